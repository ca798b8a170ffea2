"""
Build invoker.

Resolves the external build toolchain and runs it against the selected
project, writing raw build output into a fresh directory.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import ToolchainError, ToolchainNotFound

logger = logging.getLogger(__name__)

# A strategy returns an executable path or None, plus what it tried
Resolver = Callable[[], Tuple[Optional[str], List[str]]]


def explicit_candidates(candidates: Sequence[str]) -> Resolver:
    """Probe a fixed list of executable locations in order."""
    def resolve():
        for candidate in candidates:
            path = Path(os.path.expanduser(candidate))
            if path.is_file() and os.access(path, os.X_OK):
                return str(path), [candidate]
        return None, list(candidates)
    return resolve


def search_path_lookup(name: str, search_path: str) -> Resolver:
    """Look the executable up on an explicit search path."""
    def resolve():
        found = shutil.which(name, path=search_path)
        return found, [f"{name} on search path"]
    return resolve


def resolve_toolchain(name: str, candidates: Sequence[str], search_path: str) -> str:
    """Return the first executable found by the resolution strategies.

    Raises:
        ToolchainNotFound: If no strategy yields an executable
    """
    strategies = [
        explicit_candidates(candidates),
        search_path_lookup(name, search_path),
    ]
    tried: List[str] = []
    for strategy in strategies:
        found, attempted = strategy()
        if found:
            logger.info(f"Using toolchain: {found}")
            return found
        tried.extend(attempted)
    raise ToolchainNotFound(name, tried)


def prepare_output_dir(out_dir: Path) -> Path:
    """Remove any previous build output and recreate an empty directory."""
    out_dir = Path(out_dir)
    if out_dir.exists():
        logger.info(f"Removing existing {out_dir} directory...")
        shutil.rmtree(out_dir)
    out_dir.mkdir(parents=True)
    return out_dir


def build(
    executable: str,
    project: Path,
    configuration: str,
    out_dir: Path,
    verb: str = "publish",
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> None:
    """Run the toolchain against project, writing output into out_dir.

    out_dir must already be empty; see ``prepare_output_dir``.

    Raises:
        ToolchainError: If the toolchain exits non-zero
    """
    command = [
        executable, verb, str(project),
        "--configuration", configuration,
        "--output", str(out_dir),
    ]
    logger.info(f"Building {project} ({configuration})...")
    logger.debug(f"Running: {' '.join(command)}")

    result = runner(command, capture_output=True, text=True)
    if result.returncode != 0:
        logger.error(f"Build failed: {result.stderr or result.stdout}")
        # some toolchains report compile errors on stdout only
        raise ToolchainError(result.returncode, result.stderr or result.stdout)

    logger.info(f"Build output written to {out_dir}")


def strip_archives(out_dir: Path) -> List[Path]:
    """Delete zip files the toolchain left inside out_dir.

    A nested archive would end up zipped again inside the bundle.
    """
    removed = []
    for path in sorted(Path(out_dir).rglob("*")):
        if path.is_file() and path.suffix.lower() == ".zip":
            path.unlink()
            removed.append(path)
            logger.info(f"Removed nested archive {path}")
    return removed
