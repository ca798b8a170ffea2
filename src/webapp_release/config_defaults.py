"""Helpers for loading release defaults from .env/.env.defaults.

Values found here sit between the built-in defaults of ``ReleaseSettings``
and the process environment: `.env.defaults` is the version-controlled
catalog, `.env` a local override layer that need not repeat every key.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable

from .errors import ConfigurationError


def candidate_dirs() -> list[Path]:
    """Return the directories searched for env files, repo root first."""
    dirs: list[Path] = []
    repo_root = Path(__file__).resolve().parent.parent.parent
    dirs.append(repo_root)

    # cwd may have been deleted underneath us
    try:
        cwd = Path.cwd()
        if cwd.resolve() != repo_root.resolve():
            dirs.append(cwd)
    except (OSError, FileNotFoundError):
        pass
    return dirs


def read_defaults(dirs: Iterable[Path]) -> Dict[str, str]:
    """Merge `.env.defaults` then `.env` from each directory, in order."""
    dirs = [Path(d) for d in dirs]
    merged: Dict[str, str] = {}

    for directory in dirs:
        defaults_path = directory / ".env.defaults"
        if defaults_path.is_file():
            merged.update(_parse_env_file(defaults_path))

    for directory in dirs:
        env_path = directory / ".env"
        if env_path.is_file():
            merged.update(_parse_env_file(env_path))

    return merged


@lru_cache(maxsize=1)
def load_defaults() -> Dict[str, str]:
    """Cached defaults for the current process.

    Returns empty dict if neither file exists (e.g. on a target host where
    everything comes from the environment).
    """
    return read_defaults(candidate_dirs())


def get_default(key: str, fallback: str | None = None) -> str | None:
    """Return the configured default for a key (or fallback)."""
    return load_defaults().get(key, fallback)


def require_default(key: str) -> str:
    """Return the configured default or raise if missing."""
    value = load_defaults().get(key)
    if value is None:
        raise ConfigurationError(f"Required default '{key}' missing from .env/.env.defaults")
    return value


def _parse_env_file(env_path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    with env_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export "):]
            if "=" not in line:
                continue
            key, value = line.split("=", 1)
            value = value.strip()
            if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
                value = value[1:-1]
            values[key.strip()] = value
    return values
