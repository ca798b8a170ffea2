"""Tests for the systemctl-backed service manager."""

from __future__ import annotations

import os
import subprocess
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from webapp_release.errors import ServiceManagerError
from webapp_release.service_manager import (
    ServiceState,
    SystemdServiceManager,
    get_service_manager,
)

LIST_UNITS = (
    "cron.service      loaded active running Regular background program processing daemon\n"
    "webapp.service    loaded inactive dead  Web App\n"
)


class FakeSystemctl:
    """Maps systemctl subcommands to canned (returncode, stdout, stderr)."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append(command[1:])
        returncode, stdout, stderr = self.responses.get(command[1], (0, "", ""))
        return subprocess.CompletedProcess(command, returncode, stdout, stderr)


def test_query_absent_when_unit_not_listed():
    runner = FakeSystemctl({"list-units": (0, "cron.service loaded active running cron\n", "")})
    manager = SystemdServiceManager(runner=runner)

    assert manager.query("webapp") == ServiceState.ABSENT
    assert [call[0] for call in runner.calls] == ["list-units"]


def test_query_does_not_match_unit_name_prefix():
    runner = FakeSystemctl({"list-units": (0, "webapp-worker.service loaded active running w\n", "")})
    manager = SystemdServiceManager(runner=runner)

    assert manager.query("webapp") == ServiceState.ABSENT


def test_query_running():
    runner = FakeSystemctl({"list-units": (0, LIST_UNITS, ""), "is-active": (0, "", "")})
    manager = SystemdServiceManager(runner=runner)

    assert manager.query("webapp") == ServiceState.RUNNING
    assert ["is-active", "--quiet", "webapp"] in runner.calls


def test_query_stopped():
    runner = FakeSystemctl({"list-units": (0, LIST_UNITS, ""), "is-active": (3, "", "")})
    manager = SystemdServiceManager(runner=runner)

    assert manager.query("webapp") == ServiceState.STOPPED


def test_list_units_failure_raises():
    runner = FakeSystemctl({"list-units": (1, "", "Failed to connect to bus")})
    manager = SystemdServiceManager(runner=runner)

    with pytest.raises(ServiceManagerError) as excinfo:
        manager.query("webapp")
    assert excinfo.value.exit_code == 1
    assert "Failed to connect to bus" in str(excinfo.value)


@pytest.mark.parametrize("method, args, expected", [
    ("stop", ("webapp",), ["stop", "webapp"]),
    ("start", ("webapp",), ["start", "webapp"]),
    ("reload_definitions", (), ["daemon-reload"]),
])
def test_commands(method, args, expected):
    runner = FakeSystemctl()
    manager = SystemdServiceManager(runner=runner)

    getattr(manager, method)(*args)

    assert runner.calls == [expected]


def test_start_failure_raises_with_exit_code():
    runner = FakeSystemctl({"start": (1, "", "Job for webapp.service failed")})
    manager = SystemdServiceManager(runner=runner)

    with pytest.raises(ServiceManagerError) as excinfo:
        manager.start("webapp")
    assert excinfo.value.exit_code == 1
    assert excinfo.value.command == ["systemctl", "start", "webapp"]


def test_status_text_tolerates_inactive_exit_code():
    runner = FakeSystemctl({"status": (3, "● webapp.service\n   Active: failed (Result: exit-code)\n", "")})
    manager = SystemdServiceManager(runner=runner)

    assert "Active: failed" in manager.status_text("webapp")
    assert runner.calls == [["status", "webapp", "--no-pager"]]


def test_missing_systemctl_binary_raises():
    def runner(command, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", command[0])

    manager = SystemdServiceManager(runner=runner)
    with pytest.raises(ServiceManagerError) as excinfo:
        manager.start("webapp")
    assert excinfo.value.exit_code is None


def test_registry():
    assert isinstance(get_service_manager("systemd"), SystemdServiceManager)
    with pytest.raises(ServiceManagerError):
        get_service_manager("upstart")
