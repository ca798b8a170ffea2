"""
Lifecycle hooks run on the target host by the deployment agent.

    before-install      stop the service if running, ensure the target dir
    (agent installs the new bundle)
    application-start   reload unit definitions, start, verify running

Each hook is short-lived and fail-fast: the first failing service manager
command aborts it. Nothing is retried here; retry and rollback belong to the
deployment agent.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict

from .errors import ServiceManagerError, StartupFailed
from .service_manager import ServiceManager, ServiceState

logger = logging.getLogger(__name__)


class LifecycleOrchestrator:
    """Pre- and post-install steps for a single named service."""

    def __init__(
        self,
        manager: ServiceManager,
        service_name: str,
        target_dir: Path,
        settle_seconds: float = 5.0,
        poll_interval: float = 1.0,
        max_polls: int = 30,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.manager = manager
        self.service_name = service_name
        self.target_dir = Path(target_dir)
        self.settle_seconds = settle_seconds
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.sleep = sleep

    @classmethod
    def from_settings(cls, manager: ServiceManager, settings, **kwargs) -> "LifecycleOrchestrator":
        return cls(
            manager,
            settings.service_name,
            settings.target_dir,
            settle_seconds=settings.settle_seconds,
            poll_interval=settings.stop_poll_interval,
            max_polls=settings.stop_max_polls,
            **kwargs,
        )

    def _wait_until_stopped(self) -> None:
        for _ in range(self.max_polls):
            if self.manager.query(self.service_name) != ServiceState.RUNNING:
                return
            self.sleep(self.poll_interval)
        raise ServiceManagerError(
            ["stop", self.service_name], None,
            f"{self.service_name} still running after {self.max_polls} checks",
        )

    def pre_install(self) -> None:
        """Make sure the service is not running and the target dir exists."""
        logger.info(f"BeforeInstall - stopping {self.service_name} service if it exists")

        state = self.manager.query(self.service_name)
        if state == ServiceState.RUNNING:
            logger.info(f"Stopping {self.service_name} service")
            self.manager.stop(self.service_name)
            self._wait_until_stopped()
        elif state == ServiceState.STOPPED:
            logger.info(f"{self.service_name} service is not running")
        else:
            logger.info(f"{self.service_name} service does not exist yet")

        logger.info(f"Ensuring {self.target_dir} exists")
        self.target_dir.mkdir(parents=True, exist_ok=True)

        logger.info("BeforeInstall completed")

    def post_install(self) -> None:
        """Start the freshly installed service and verify it is running.

        Raises:
            StartupFailed: If the service is not running after the settle
                interval; carries the service manager's status text
        """
        logger.info(f"ApplicationStart - starting {self.service_name} service")

        self.manager.reload_definitions()
        self.manager.start(self.service_name)

        logger.info(f"Waiting for {self.settle_seconds:g} seconds...")
        self.sleep(self.settle_seconds)

        # absent and stopped are treated the same here
        if self.manager.query(self.service_name) != ServiceState.RUNNING:
            status = self.manager.status_text(self.service_name)
            logger.error(f"{self.service_name} failed to start")
            raise StartupFailed(self.service_name, status)

        logger.info(f"{self.service_name} service is running")
        logger.info("ApplicationStart completed")


HOOKS: Dict[str, str] = {
    "before-install": "pre_install",
    "application-start": "post_install",
}


def run_hook(orchestrator: LifecycleOrchestrator, hook: str) -> None:
    """Run a lifecycle step by its agent hook name."""
    try:
        step = HOOKS[hook]
    except KeyError:
        raise ValueError(f"Unknown hook: {hook}") from None
    getattr(orchestrator, step)()
