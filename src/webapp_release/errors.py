"""
Exceptions raised by the release pipeline and the lifecycle hooks.

Every error carries enough context (path, exit code, diagnostic text) for an
operator or the deployment agent to act on it.
"""

from pathlib import Path
from typing import Optional, Sequence


class ReleaseError(Exception):
    """Base class for all pipeline and hook failures."""
    pass


class ConfigurationError(ReleaseError):
    """Raised for invalid settings or configuration files."""
    pass


class NotFound(ReleaseError):
    """No candidate project descriptor exists under the search root."""

    def __init__(self, root: Path, pattern: str):
        self.root = Path(root)
        self.pattern = pattern
        super().__init__(f"No project matching '{pattern}' found under {self.root}")


class ToolchainNotFound(ReleaseError):
    """No invocable toolchain executable could be resolved."""

    def __init__(self, name: str, tried: Sequence[str]):
        self.name = name
        self.tried = list(tried)
        tried_text = ", ".join(self.tried) if self.tried else "nothing"
        super().__init__(f"Toolchain '{name}' not found (tried: {tried_text})")


class ToolchainError(ReleaseError):
    """The external toolchain exited non-zero."""

    def __init__(self, exit_code: int, stderr: str):
        self.exit_code = exit_code
        self.stderr = stderr or ""
        message = f"Toolchain exited with code {exit_code}"
        if self.stderr.strip():
            message += f": {self.stderr.strip()}"
        super().__init__(message)


class MissingBuildOutput(ReleaseError):
    """Build output directory is missing or empty."""

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Build output missing or empty: {self.path}")


class ServiceManagerError(ReleaseError):
    """A service manager command failed."""

    def __init__(self, command: Sequence[str], exit_code: Optional[int], stderr: str = ""):
        self.command = list(command)
        self.exit_code = exit_code
        self.stderr = stderr or ""
        message = f"'{' '.join(self.command)}' failed"
        if exit_code is not None:
            message += f" with exit code {exit_code}"
        if self.stderr.strip():
            message += f": {self.stderr.strip()}"
        super().__init__(message)


class StartupFailed(ReleaseError):
    """Service did not reach the running state after start."""

    def __init__(self, service: str, status_text: str):
        self.service = service
        self.status_text = status_text or ""
        message = f"{service} failed to start"
        if self.status_text.strip():
            message += f"\n{self.status_text.rstrip()}"
        super().__init__(message)
