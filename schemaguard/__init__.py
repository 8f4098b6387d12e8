"""Shadow-database tooling for Postgres migrations: Docker shadow databases, plan-regression analysis and reports."""

__version__ = "0.1.0"