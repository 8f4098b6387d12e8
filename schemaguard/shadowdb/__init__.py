"""Ephemeral Docker-based Postgres shadow database and Docker availability check."""