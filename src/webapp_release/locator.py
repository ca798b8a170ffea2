"""
Project locator.

Finds the single build-project descriptor to compile under a source tree,
preferring the one that declares itself a web application.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .errors import NotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    path: Path
    is_web_project: bool


def _sort_key(root: Path, path: Path):
    return path.relative_to(root).parts


def _is_web_project(path: Path, marker: str) -> bool:
    try:
        return marker in path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return False


def discover_candidates(root: Path, pattern: str, marker: str) -> List[Candidate]:
    """Enumerate descriptor files under root in a stable order.

    Ordering is by relative path components, so the result does not depend
    on the filesystem's directory iteration order.
    """
    root = Path(root)
    paths = [path for path in root.rglob(pattern) if path.is_file()]
    paths.sort(key=lambda path: _sort_key(root, path))
    return [Candidate(path, _is_web_project(path, marker)) for path in paths]


def locate(root: Path, pattern: str = "*.csproj", marker: str = "Microsoft.NET.Sdk.Web") -> Path:
    """Select the project descriptor to build.

    Returns the first web project in enumeration order, else the first
    candidate overall.

    Raises:
        NotFound: If root contains no descriptor matching pattern
    """
    candidates = discover_candidates(root, pattern, marker)
    if not candidates:
        raise NotFound(Path(root), pattern)

    for candidate in candidates:
        if candidate.is_web_project:
            logger.info(f"Found web project: {candidate.path}")
            return candidate.path

    selected = candidates[0].path
    logger.warning(f"No web project found, falling back to {selected}")
    return selected
