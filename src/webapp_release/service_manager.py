"""
Service manager interface and the systemd implementation.

The lifecycle hooks only observe and command the service through this
interface; service state is never persisted on our side.
"""

import enum
import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Callable, Dict, Type

from .errors import ServiceManagerError

logger = logging.getLogger(__name__)


class ServiceState(enum.Enum):
    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


class ServiceManager(ABC):
    """Abstract base class for OS service managers."""

    @abstractmethod
    def query(self, name: str) -> ServiceState:
        """Return the observed state of a service."""
        pass

    @abstractmethod
    def stop(self, name: str) -> None:
        pass

    @abstractmethod
    def start(self, name: str) -> None:
        pass

    @abstractmethod
    def reload_definitions(self) -> None:
        """Re-read unit definitions after new files were installed."""
        pass

    @abstractmethod
    def status_text(self, name: str) -> str:
        """Human-readable status, used in failure reports."""
        pass


class SystemdServiceManager(ServiceManager):
    """Drives systemd through ``systemctl``."""

    def __init__(self, systemctl: str = "systemctl",
                 runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        self.systemctl = systemctl
        self.runner = runner

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        command = [self.systemctl, *args]
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = self.runner(command, capture_output=True, text=True)
        except OSError as e:
            raise ServiceManagerError(command, None, str(e)) from e
        if check and result.returncode != 0:
            raise ServiceManagerError(command, result.returncode, result.stderr)
        return result

    @staticmethod
    def _unit(name: str) -> str:
        return name if name.endswith(".service") else f"{name}.service"

    def is_registered(self, name: str) -> bool:
        result = self._run("list-units", "--full", "--all", "--plain", "--no-legend")
        unit = self._unit(name)
        return any(unit in line.split() for line in result.stdout.splitlines())

    def query(self, name: str) -> ServiceState:
        if not self.is_registered(name):
            return ServiceState.ABSENT
        # is-active exits non-zero for anything but active
        result = self._run("is-active", "--quiet", name, check=False)
        return ServiceState.RUNNING if result.returncode == 0 else ServiceState.STOPPED

    def stop(self, name: str) -> None:
        self._run("stop", name)

    def start(self, name: str) -> None:
        self._run("start", name)

    def reload_definitions(self) -> None:
        self._run("daemon-reload")

    def status_text(self, name: str) -> str:
        # status exits 3 for inactive units; the text is still what we want
        result = self._run("status", name, "--no-pager", check=False)
        return (result.stdout + result.stderr).strip()


SERVICE_MANAGERS: Dict[str, Type[ServiceManager]] = {
    "systemd": SystemdServiceManager,
}


def get_service_manager(code: str = "systemd", **kwargs) -> ServiceManager:
    """Get a service manager instance by code.

    Raises:
        ServiceManagerError: If code is unknown
    """
    manager_class = SERVICE_MANAGERS.get(code)
    if not manager_class:
        raise ServiceManagerError([code], None, f"Unknown service manager: {code}")
    return manager_class(**kwargs)
