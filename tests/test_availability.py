import subprocess
from unittest import mock

import pytest

from schemaguard.shadowdb.availability import (
    DOCKER_UNAVAILABLE_MESSAGE,
    DockerUnavailableError,
    check_docker_available,
)


def _completed(rc, out):
    return subprocess.CompletedProcess(["docker"], rc, stdout=out)


@pytest.mark.parametrize(
    "phrase",
    [
        "Docker is required but unavailable.",
        "SchemaGuard v1 is Docker-only",
        "deferred to\nv1.5",
        "Docker is installed",
        "Docker daemon is running",
        "docker version",
        "schemaguard check",
    ],
)
def test_message_contains_actionable_phrases(phrase):
    assert phrase in DOCKER_UNAVAILABLE_MESSAGE
    with mock.patch("subprocess.run", return_value=_completed(1, "daemon down\n")):
        with pytest.raises(DockerUnavailableError) as info:
            check_docker_available()
    assert phrase in str(info.value)


def test_available_runs_docker_version():
    with mock.patch("subprocess.run", return_value=_completed(0, "24.0.7\n")) as run:
        result = check_docker_available()
    assert result is None
    assert run.call_args.args[0] == ["docker", "version", "--format", "{{.Server.Version}}"]


def test_daemon_down_raises_with_detail():
    out = "Cannot connect to the Docker daemon\n"
    with mock.patch("subprocess.run", return_value=_completed(1, out)):
        with pytest.raises(DockerUnavailableError) as info:
            check_docker_available()
    text = str(info.value)
    assert text.startswith(DOCKER_UNAVAILABLE_MESSAGE)
    assert "Underlying error: Cannot connect to the Docker daemon" in text
    assert info.value.detail == "Cannot connect to the Docker daemon"


def test_empty_output_uses_exit_status():
    with mock.patch("subprocess.run", return_value=_completed(1, "")):
        with pytest.raises(DockerUnavailableError) as info:
            check_docker_available()
    assert info.value.detail == "exit status 1"


def test_missing_executable_raises():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("no such file: docker")):
        with pytest.raises(DockerUnavailableError) as info:
            check_docker_available()
    assert "no such file: docker" in str(info.value)


def test_timeout_raises():
    err = subprocess.TimeoutExpired(["docker"], 2)
    with mock.patch("subprocess.run", side_effect=err):
        with pytest.raises(DockerUnavailableError) as info:
            check_docker_available(timeout=2)
    assert "timed out" in info.value.detail