"""Check that a Docker CLI and daemon are reachable."""

from __future__ import annotations

import subprocess
from typing import Optional

DOCKER_UNAVAILABLE_MESSAGE = """Docker is required but unavailable.

SchemaGuard v1 is Docker-only — it provisions an ephemeral Postgres
container as the shadow database. External Postgres mode is deferred to
v1.5.

Please make sure that:
  1. Docker is installed (Docker Desktop, Colima, OrbStack, or equivalent).
  2. The Docker daemon is running.
  3. `docker version` succeeds from your shell.

Then re-run `schemaguard check`."""


class DockerUnavailableError(RuntimeError):
    """Docker is missing or its daemon cannot be reached."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(
            f"{DOCKER_UNAVAILABLE_MESSAGE}\n\nUnderlying error: {detail}: docker unavailable"
        )


def check_docker_available(timeout: Optional[float] = None) -> None:
    """Raise DockerUnavailableError unless `docker version` succeeds."""
    command = ["docker", "version", "--format", "{{.Server.Version}}"]
    try:
        completed = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise DockerUnavailableError(str(exc)) from exc
    except OSError as exc:
        raise DockerUnavailableError(str(exc)) from exc
    if completed.returncode == 0:
        return
    detail = (completed.stdout or "").strip()
    if not detail:
        detail = f"exit status {completed.returncode}"
    raise DockerUnavailableError(detail)