"""
webapp-release: package a web application into a deployable bundle and run
its lifecycle hooks on the target host.
"""

from .assembler import AssembledBundle, assemble
from .errors import (
    ConfigurationError,
    MissingBuildOutput,
    NotFound,
    ReleaseError,
    ServiceManagerError,
    StartupFailed,
    ToolchainError,
    ToolchainNotFound,
)
from .lifecycle import LifecycleOrchestrator
from .locator import locate
from .pipeline import run_release
from .service_manager import ServiceState, SystemdServiceManager
from .settings import ReleaseSettings, load_settings

__version__ = "1.0.0"

__all__ = [
    "AssembledBundle",
    "ConfigurationError",
    "LifecycleOrchestrator",
    "MissingBuildOutput",
    "NotFound",
    "ReleaseError",
    "ReleaseSettings",
    "ServiceManagerError",
    "ServiceState",
    "StartupFailed",
    "SystemdServiceManager",
    "ToolchainError",
    "ToolchainNotFound",
    "assemble",
    "load_settings",
    "locate",
    "run_release",
]
