"""
Bundle assembler.

Lays out build output, the deployment manifest and the hook scripts in a
staging directory and zips its contents into the deployable bundle:

    app/            copy of the build output
    appspec.yml     deployment manifest (optional, copied verbatim)
    scripts/        lifecycle hook scripts (optional)

Archive entries are relative to the staging root, so extracting the bundle
on the target reproduces that layout at the top level.
"""

import logging
import os
import shutil
import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import MissingBuildOutput

logger = logging.getLogger(__name__)

APP_DIR = "app"
SCRIPTS_DIR = "scripts"
SHELL_SUFFIXES = (".sh",)


@dataclass
class AssembledBundle:
    """Summary of a finished bundle."""
    archive: Path
    entries: List[str] = field(default_factory=list)
    manifest_included: bool = False
    scripts: List[str] = field(default_factory=list)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _has_files(directory: Path) -> bool:
    return any(path.is_file() for path in directory.rglob("*"))


def normalize_line_endings(path: Path) -> bool:
    """Rewrite a file with LF line endings. Returns True if it changed."""
    path = Path(path)
    data = path.read_bytes()
    normalized = data.replace(b"\r\n", b"\n").replace(b"\r", b"\n")
    if normalized == data:
        return False
    path.write_bytes(normalized)
    return True


def is_shell_script(path: Path) -> bool:
    """Scripts that run on the Unix target: *.sh files and shebang files."""
    if path.suffix.lower() in SHELL_SUFFIXES:
        return True
    if path.suffix:
        return False
    with open(path, "rb") as f:
        return f.read(2) == b"#!"


def prepare_scripts(scripts_dir: Path) -> List[Path]:
    """Normalize line endings and set the executable bit on hook scripts."""
    prepared = []
    for path in sorted(Path(scripts_dir).rglob("*")):
        if not path.is_file() or not is_shell_script(path):
            continue
        if normalize_line_endings(path):
            logger.info(f"Converted {path.name} to LF line endings")
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        prepared.append(path)
    return prepared


def stage_bundle(
    build_output: Path,
    staging: Path,
    manifest_path: Optional[Path] = None,
    scripts_path: Optional[Path] = None,
) -> AssembledBundle:
    """Populate a fresh staging directory with the bundle layout.

    Raises:
        MissingBuildOutput: If build_output is missing or holds no files
    """
    build_output = Path(build_output)
    staging = Path(staging)

    if not build_output.is_dir() or not _has_files(build_output):
        raise MissingBuildOutput(build_output)

    if staging.exists():
        logger.info(f"Removing existing {staging} directory...")
        _remove(staging)
    staging.mkdir(parents=True)

    bundle = AssembledBundle(archive=Path())

    shutil.copytree(build_output, staging / APP_DIR)
    logger.info(f"Copied build output to {staging / APP_DIR}")

    if manifest_path is not None and Path(manifest_path).is_file():
        manifest_path = Path(manifest_path)
        shutil.copy2(manifest_path, staging / manifest_path.name)
        bundle.manifest_included = True
        logger.info(f"Copied {manifest_path.name} to bundle root")
    elif manifest_path is None:
        logger.warning("No manifest configured, bundle has no manifest")
    else:
        logger.warning(f"Manifest not found at {manifest_path}, bundle has no manifest")

    if scripts_path is not None and Path(scripts_path).is_dir():
        target = staging / SCRIPTS_DIR
        _remove(target)
        shutil.copytree(scripts_path, target)
        bundle.scripts = [
            path.relative_to(staging).as_posix() for path in prepare_scripts(target)
        ]
        logger.info(f"Copied {len(bundle.scripts)} hook scripts")
    elif scripts_path is None:
        logger.warning("No scripts directory configured, bundle has no hooks")
    else:
        logger.warning(f"Scripts directory not found at {scripts_path}, bundle has no hooks")

    return bundle


def write_archive(staging: Path, dest_archive: Path) -> List[str]:
    """Zip the contents of staging (not staging itself) into dest_archive."""
    staging = Path(staging)
    dest_archive = Path(dest_archive)

    if dest_archive.exists():
        dest_archive.unlink()
        logger.info(f"Removed old {dest_archive}")
    dest_archive.parent.mkdir(parents=True, exist_ok=True)

    entries: List[str] = []
    with zipfile.ZipFile(dest_archive, "w", zipfile.ZIP_DEFLATED,
                         strict_timestamps=False) as zipf:
        for root, dirs, files in os.walk(staging):
            dirs.sort()
            root_path = Path(root)
            if root_path != staging and not dirs and not files:
                # keep empty directories
                arcname = root_path.relative_to(staging).as_posix() + "/"
                zipf.write(root_path, arcname)
                entries.append(arcname)
            for file in sorted(files):
                file_path = root_path / file
                arcname = file_path.relative_to(staging).as_posix()
                zipf.write(file_path, arcname)
                entries.append(arcname)

    zip_size = dest_archive.stat().st_size
    logger.info(f"Created {dest_archive} ({zip_size / (1024 * 1024):.2f} MB, {len(entries)} entries)")
    return entries


def assemble(
    build_output: Path,
    dest_archive: Path,
    staging: Path,
    manifest_path: Optional[Path] = None,
    scripts_path: Optional[Path] = None,
) -> AssembledBundle:
    """Assemble the deployable bundle from build output, manifest and scripts.

    Any staging directory or archive left by a previous run is removed first,
    so rerunning always yields the same layout.

    Raises:
        MissingBuildOutput: If build_output is missing or holds no files
    """
    logger.info(f"Assembling bundle: {dest_archive}...")
    dest_archive = Path(dest_archive)
    if dest_archive.exists():
        dest_archive.unlink()
        logger.info(f"Removed old {dest_archive}")

    bundle = stage_bundle(build_output, staging, manifest_path, scripts_path)
    bundle.entries = write_archive(staging, dest_archive)
    bundle.archive = Path(dest_archive)
    return bundle
