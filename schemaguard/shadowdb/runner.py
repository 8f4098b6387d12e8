"""Lifecycle of the ephemeral Docker Postgres shadow database."""

from __future__ import annotations

import json
import re
import secrets
import subprocess
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path, PurePath
from typing import Optional, Sequence, Union

DEFAULT_IMAGE = "postgres:16-alpine"
CONTAINER_SNAPSHOT_PATH = "/tmp/schemaguard-snapshot"
READINESS_TIMEOUT = 45.0

_PROBE_TIMEOUT = 3.0
_PROBE_INTERVAL = 0.25
_PORT_RE = re.compile(r"[+-]?\d+")


class ShadowDBError(RuntimeError):
    """Raised when the shadow container cannot be started, probed or restored."""


@dataclass(frozen=True)
class RestoreResult:
    """Outcome of a snapshot restore."""

    duration: timedelta
    format: str  # "sql", "custom" or "tar"


def _docker(args: Sequence[str], timeout: Optional[float] = None) -> tuple[int, str]:
    """Run a docker command and return its exit code and combined output."""
    try:
        completed = subprocess.run(
            ["docker", *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=False,
        )
    except OSError as exc:
        raise ShadowDBError(f"docker {args[0]}: {exc}") from exc
    return completed.returncode, completed.stdout or ""


def parse_docker_port(out: str) -> int:
    """Return the first positive host port in `docker port` output."""
    for line in out.split("\n"):
        line = line.strip()
        if not line or ":" not in line:
            continue
        candidate = line.rpartition(":")[2]
        if not _PORT_RE.fullmatch(candidate):
            continue
        port = int(candidate)
        if port > 0:
            return port
    raise ShadowDBError(
        f"no host port found in docker port output: {json.dumps(out.strip(), ensure_ascii=False)}"
    )


class Runner:
    """One ephemeral Postgres shadow container; started once, stopped once."""

    def __init__(self, dump_path: Union[str, PurePath]) -> None:
        text = str(dump_path) if dump_path else ""
        if not text:
            raise ShadowDBError("snapshot path is required")
        if not Path(text).is_absolute():
            raise ShadowDBError(
                f"snapshot path must be absolute, got {json.dumps(text, ensure_ascii=False)}"
            )
        self._name = "schemaguard-shadow-" + secrets.token_hex(6)
        self._image = DEFAULT_IMAGE
        self._dump_path = text
        self._lock = threading.Lock()
        self._started = False
        self._stopped = False
        self._host_port = 0

    @property
    def name(self) -> str:
        """Docker container name of this runner."""
        return self._name

    @property
    def image(self) -> str:
        """Docker image used for the shadow container."""
        return self._image

    @property
    def conn_string(self) -> str:
        """libpq URL of the shadow database on the mapped host port."""
        with self._lock:
            port = self._host_port
        return f"postgres://postgres@127.0.0.1:{port}/postgres?sslmode=disable"

    def start(self) -> None:
        """Run the container, discover its port and wait until it is ready.

        On a failure after the container started, it is torn down before
        the error is raised.
        """
        with self._lock:
            if self._started:
                raise ShadowDBError("runner already started")
            self._started = True

        run_args = [
            "run", "-d", "--rm",
            "--name", self._name,
            "-P",
            "-e", "POSTGRES_HOST_AUTH_METHOD=trust",
            "-v", f"{self._dump_path}:{CONTAINER_SNAPSHOT_PATH}:ro",
            self._image,
        ]
        code, out = _docker(run_args)
        if code != 0:
            raise ShadowDBError(f"docker run: exit status {code}\n{out.strip()}")

        try:
            port = self._discover_host_port()
        except ShadowDBError as exc:
            self._force_stop()
            raise ShadowDBError(f"discover host port: {exc}") from exc
        with self._lock:
            self._host_port = port

        try:
            self._wait_ready()
        except ShadowDBError as exc:
            self._force_stop()
            raise ShadowDBError(f"shadow DB readiness: {exc}") from exc

    def stop(self) -> None:
        """Tear the container down; safe to call more than once."""
        with self._lock:
            should_stop = self._started and not self._stopped
            self._stopped = True
        if should_stop:
            self._force_stop()

    def restore_snapshot(self) -> RestoreResult:
        """Restore the mounted dump into the running shadow database."""
        with self._lock:
            started = self._started
        if not started:
            raise ShadowDBError("runner not started")

        ext = PurePath(self._dump_path).suffix.lower()
        if ext == ".sql":
            fmt = "sql"
            args = [
                "exec", self._name, "psql",
                "-U", "postgres",
                "-d", "postgres",
                "-v", "ON_ERROR_STOP=1",
                "-X", "-q",
                "-f", CONTAINER_SNAPSHOT_PATH,
            ]
        elif ext in (".dump", ".pgdump"):
            fmt = "custom"
            args = [
                "exec", self._name, "pg_restore",
                "-U", "postgres",
                "-d", "postgres",
                "--no-owner", "--no-privileges",
                CONTAINER_SNAPSHOT_PATH,
            ]
        elif ext == ".tar":
            fmt = "tar"
            args = [
                "exec", self._name, "pg_restore",
                "-U", "postgres",
                "-d", "postgres",
                "-F", "t",
                "--no-owner", "--no-privileges",
                CONTAINER_SNAPSHOT_PATH,
            ]
        else:
            raise ShadowDBError(
                f"unsupported snapshot format {json.dumps(ext)} (supported: .sql, .dump, .tar)"
            )

        begin = time.monotonic()
        code, out = _docker(args)
        elapsed = timedelta(seconds=time.monotonic() - begin)
        if code != 0:
            raise ShadowDBError(
                f"snapshot restore ({fmt}) failed: exit status {code}\n{out.strip()}"
            )
        return RestoreResult(duration=elapsed, format=fmt)

    def __enter__(self) -> "Runner":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _force_stop(self) -> None:
        """Remove the container regardless of state, ignoring failures."""
        try:
            code, _ = _docker(["stop", "-t", "3", self._name])
        except (ShadowDBError, subprocess.TimeoutExpired):
            code = -1
        if code == 0:
            return
        for args in (["kill", self._name], ["rm", "-f", self._name]):
            try:
                _docker(args)
            except (ShadowDBError, subprocess.TimeoutExpired):
                pass

    def _discover_host_port(self) -> int:
        code, out = _docker(["port", self._name, "5432/tcp"])
        if code != 0:
            raise ShadowDBError(f"docker port: exit status {code}\n{out.strip()}")
        return parse_docker_port(out)

    def _wait_ready(self) -> None:
        deadline = time.monotonic() + READINESS_TIMEOUT
        probe = [
            "exec", self._name,
            "pg_isready", "-U", "postgres", "-d", "postgres", "-h", "127.0.0.1",
        ]
        while True:
            try:
                code, _ = _docker(probe, timeout=_PROBE_TIMEOUT)
            except subprocess.TimeoutExpired:
                code = -1
            if code == 0:
                return
            if time.monotonic() > deadline:
                raise ShadowDBError(
                    f"timed out after {READINESS_TIMEOUT:g}s waiting for shadow DB"
                )
            time.sleep(_PROBE_INTERVAL)