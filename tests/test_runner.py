import re
import subprocess
from unittest import mock

import pytest

from schemaguard.shadowdb.runner import (
    RestoreResult,
    Runner,
    ShadowDBError,
    parse_docker_port,
)


@pytest.mark.parametrize(
    "text, want",
    [
        ("0.0.0.0:55842\n", 55842),
        ("0.0.0.0:55842\n[::]:55842\n", 55842),
        ("   0.0.0.0:12345  \n", 12345),
        ("0.0.0.0:0\n[::]:4000\n", 4000),
    ],
)
def test_parse_docker_port_accepts_typical_output(text, want):
    assert parse_docker_port(text) == want


@pytest.mark.parametrize("text", ["", "\n\n", "not a port", ":notanumber"])
def test_parse_docker_port_rejects_empty_and_garbage(text):
    with pytest.raises(ShadowDBError, match="no host port found"):
        parse_docker_port(text)


class FakeDocker:
    """Stands in for subprocess.run, answering docker subcommands."""

    def __init__(self, responses=None):
        self.responses = {
            "run": (0, "abc123\n"),
            "port": (0, "0.0.0.0:55842\n[::]:55842\n"),
            "exec": (0, ""),
            "stop": (0, ""),
            "kill": (0, ""),
            "rm": (0, ""),
        }
        self.responses.update(responses or {})
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append(command)
        code, out = self.responses[command[1]]
        return subprocess.CompletedProcess(command, code, stdout=out)

    def subcommands(self):
        return [c[1] for c in self.calls]


@pytest.fixture
def fake():
    docker = FakeDocker()
    with mock.patch("subprocess.run", side_effect=docker):
        yield docker


def test_init_requires_path():
    with pytest.raises(ShadowDBError, match="snapshot path is required"):
        Runner("")


def test_init_requires_absolute_path():
    with pytest.raises(ShadowDBError, match="must be absolute"):
        Runner("relative/snap.sql")


def test_name_and_image(tmp_path):
    first = Runner(tmp_path / "snap.sql")
    second = Runner(tmp_path / "snap.sql")
    assert re.fullmatch(r"schemaguard-shadow-[0-9a-f]{12}", first.name)
    assert first.name != second.name
    assert first.image == "postgres:16-alpine"


def test_restore_before_start_fails(tmp_path):
    runner = Runner(tmp_path / "snap.sql")
    with pytest.raises(ShadowDBError, match="runner not started"):
        runner.restore_snapshot()


def test_start_sets_conn_string_and_mounts_snapshot(tmp_path, fake):
    path = tmp_path / "snap.sql"
    runner = Runner(path)
    runner.start()
    assert runner.conn_string == "postgres://postgres@127.0.0.1:55842/postgres?sslmode=disable"
    run_call = fake.calls[0]
    assert run_call[:4] == ["docker", "run", "-d", "--rm"]
    assert f"{path}:/tmp/schemaguard-snapshot:ro" in run_call
    assert "POSTGRES_HOST_AUTH_METHOD=trust" in run_call
    assert run_call[-1] == "postgres:16-alpine"
    assert fake.subcommands() == ["run", "port", "exec"]


def test_start_twice_fails(tmp_path, fake):
    runner = Runner(tmp_path / "snap.sql")
    runner.start()
    with pytest.raises(ShadowDBError, match="already started"):
        runner.start()


def test_docker_run_failure(tmp_path):
    docker = FakeDocker({"run": (125, "image not found\n")})
    with mock.patch("subprocess.run", side_effect=docker):
        runner = Runner(tmp_path / "snap.sql")
        with pytest.raises(ShadowDBError, match="docker run") as info:
            runner.start()
    assert "image not found" in str(info.value)


def test_port_failure_tears_down(tmp_path):
    docker = FakeDocker({"port": (0, "garbage")})
    with mock.patch("subprocess.run", side_effect=docker):
        runner = Runner(tmp_path / "snap.sql")
        with pytest.raises(ShadowDBError, match="discover host port"):
            runner.start()
    assert docker.subcommands() == ["run", "port", "stop"]


@pytest.mark.parametrize(
    "filename, fmt, tool",
    [
        ("snap.sql", "sql", "psql"),
        ("snap.dump", "custom", "pg_restore"),
        ("snap.pgdump", "custom", "pg_restore"),
        ("snap.tar", "tar", "pg_restore"),
        ("SNAP.SQL", "sql", "psql"),
    ],
)
def test_restore_picks_tool_by_extension(tmp_path, fake, filename, fmt, tool):
    runner = Runner(tmp_path / filename)
    runner.start()
    result = runner.restore_snapshot()
    assert isinstance(result, RestoreResult)
    assert result.format == fmt
    assert result.duration.total_seconds() >= 0
    restore_call = fake.calls[-1]
    assert restore_call[:4] == ["docker", "exec", runner.name, tool]
    assert "/tmp/schemaguard-snapshot" in restore_call


def test_restore_sql_stops_on_error(tmp_path, fake):
    runner = Runner(tmp_path / "snap.sql")
    runner.start()
    result = runner.restore_snapshot()
    assert result.format == "sql"
    assert "ON_ERROR_STOP=1" in fake.calls[-1]


def test_restore_tar_passes_format_flag(tmp_path, fake):
    runner = Runner(tmp_path / "snap.tar")
    runner.start()
    result = runner.restore_snapshot()
    assert result.format == "tar"
    call = fake.calls[-1]
    assert call[call.index("-F") + 1] == "t"


def test_restore_unsupported_extension(tmp_path, fake):
    runner = Runner(tmp_path / "snap.csv")
    runner.start()
    with pytest.raises(ShadowDBError, match="unsupported snapshot format"):
        runner.restore_snapshot()


def test_restore_failure_includes_output(tmp_path, fake):
    runner = Runner(tmp_path / "snap.sql")
    runner.start()
    fake.responses["exec"] = (3, "ERROR: relation exists\n")
    with pytest.raises(ShadowDBError, match=r"snapshot restore \(sql\) failed") as info:
        runner.restore_snapshot()
    assert "ERROR: relation exists" in str(info.value)


def test_stop_is_idempotent(tmp_path, fake):
    runner = Runner(tmp_path / "snap.sql")
    runner.start()
    assert runner.stop() is None
    assert runner.stop() is None
    assert fake.subcommands().count("stop") == 1
    assert fake.calls[-1] == ["docker", "stop", "-t", "3", runner.name]


def test_stop_before_start_runs_nothing(tmp_path, fake):
    runner = Runner(tmp_path / "snap.sql")
    assert runner.stop() is None
    assert fake.calls == []
    with pytest.raises(ShadowDBError, match="runner not started"):
        runner.restore_snapshot()


def test_failed_stop_falls_back_to_kill_and_rm(tmp_path, fake):
    runner = Runner(tmp_path / "snap.sql")
    runner.start()
    fake.responses["stop"] = (1, "no such container")
    runner.stop()
    assert fake.subcommands()[-3:] == ["stop", "kill", "rm"]
    assert fake.calls[-1] == ["docker", "rm", "-f", runner.name]


def test_context_manager_starts_and_stops(tmp_path, fake):
    with Runner(tmp_path / "snap.dump") as runner:
        assert fake.subcommands() == ["run", "port", "exec"]
    assert fake.calls[-1] == ["docker", "stop", "-t", "3", runner.name]