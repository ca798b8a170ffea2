"""
Release settings.

Precedence, lowest first: built-in defaults, `.env.defaults`/`.env`, an
optional YAML file, then the process environment (``WEBAPP_*`` keys).
The executable search path is captured once here and passed explicitly to
the toolchain resolver instead of being read from the environment later.
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .config_defaults import load_defaults
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

BUILD_CONFIGURATIONS = ("Debug", "Release")
ENV_PREFIX = "WEBAPP_"
MAX_CONFIG_BYTES = 1024 * 1024


@dataclass(frozen=True)
class ReleaseSettings:
    """Every tunable used by the pipeline and the lifecycle hooks."""

    # build host
    build_configuration: str = "Release"
    output_root: Path = Path("release")
    project_root: Path = Path(".")
    descriptor_pattern: str = "*.csproj"
    web_marker: str = "Microsoft.NET.Sdk.Web"
    toolchain_name: str = "dotnet"
    toolchain_candidates: List[str] = field(default_factory=lambda: [
        "/usr/share/dotnet/dotnet",
        "/usr/lib/dotnet/dotnet",
        os.path.expanduser("~/.dotnet/dotnet"),
    ])
    search_path: str = os.defpath
    build_verb: str = "publish"
    manifest_name: str = "appspec.yml"
    scripts_dir: str = "scripts"
    archive_name: str = "webapp.zip"

    # target host
    service_name: str = "webapp"
    target_dir: Path = Path("/var/www/WebApp")
    settle_seconds: float = 5.0
    stop_poll_interval: float = 1.0
    stop_max_polls: int = 30

    @property
    def publish_dir(self) -> Path:
        return self.output_root / "publish"

    @property
    def staging_dir(self) -> Path:
        return self.output_root / "staging"

    @property
    def archive_path(self) -> Path:
        return self.output_root / self.archive_name

    @property
    def manifest_path(self) -> Path:
        return self.project_root / self.manifest_name

    @property
    def scripts_path(self) -> Path:
        return self.project_root / self.scripts_dir


_FIELD_TYPES: Dict[str, Any] = {f.name: f.type for f in fields(ReleaseSettings)}


def env_key(name: str) -> str:
    """Environment variable name for a settings field."""
    return f"{ENV_PREFIX}{name.upper()}"


def _coerce(name: str, value: Any) -> Any:
    kind = _FIELD_TYPES[name]
    try:
        if kind is Path:
            return Path(os.path.expanduser(str(value)))
        if kind is float:
            return float(value)
        if kind is int:
            return int(value)
        if kind == List[str]:
            if isinstance(value, str):
                return [item for item in value.split(os.pathsep) if item]
            if not isinstance(value, (list, tuple)):
                raise TypeError(f"expected a list, got {type(value).__name__}")
            return [str(item) for item in value]
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for '{name}': {value!r} ({e})") from e


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load settings overrides from a YAML file."""
    config_path = Path(config_path)
    if not config_path.is_file():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    file_size = config_path.stat().st_size
    if file_size > MAX_CONFIG_BYTES:
        raise ConfigurationError(f"Configuration file too large: {file_size} bytes")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Invalid configuration: root must be a mapping")

    unknown = sorted(set(data) - set(_FIELD_TYPES))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
    return data


def _env_layer(layer: Mapping[str, str]) -> Dict[str, Any]:
    return {name: layer[env_key(name)] for name in _FIELD_TYPES if env_key(name) in layer}


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    defaults: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> ReleaseSettings:
    """Build ``ReleaseSettings`` from every configuration layer.

    Args:
        config_path: Optional YAML file with field-name keys
        environ: Environment mapping (defaults to ``os.environ``)
        defaults: `.env` layer (defaults to ``load_defaults()``)
        **overrides: Explicit values (e.g. from CLI flags), applied last;
            ``None`` values are ignored

    Raises:
        ConfigurationError: On unknown keys or invalid values
    """
    environ = os.environ if environ is None else environ
    defaults = load_defaults() if defaults is None else defaults

    values: Dict[str, Any] = {"search_path": environ.get("PATH", os.defpath)}

    values.update(_env_layer(defaults))

    # an explicitly named file beats the repo-wide env files
    if config_path is not None:
        values.update(load_config_file(config_path))
        logger.debug(f"Loaded settings file {config_path}")

    values.update(_env_layer(environ))

    for name, value in overrides.items():
        if name not in _FIELD_TYPES:
            raise ConfigurationError(f"Unknown setting: {name}")
        if value is not None:
            values[name] = value

    settings = replace(
        ReleaseSettings(),
        **{name: _coerce(name, value) for name, value in values.items()},
    )
    validate_settings(settings)
    return settings


def validate_settings(settings: ReleaseSettings) -> None:
    """Reject settings no pipeline run could succeed with."""
    if settings.build_configuration not in BUILD_CONFIGURATIONS:
        raise ConfigurationError(
            f"Build configuration must be one of {', '.join(BUILD_CONFIGURATIONS)}, "
            f"got '{settings.build_configuration}'"
        )
    if not settings.service_name.strip():
        raise ConfigurationError("Service name must not be empty")
    if settings.settle_seconds < 0 or settings.stop_poll_interval < 0:
        raise ConfigurationError("Wait intervals must not be negative")
    if settings.stop_max_polls < 1:
        raise ConfigurationError("stop_max_polls must be at least 1")
