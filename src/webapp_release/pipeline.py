"""
Build-time release pipeline.

Steps run strictly in order and each one raises on failure, so a broken step
never hands partial output to the next:

    clear output -> locate -> resolve toolchain -> build -> strip archives -> assemble
"""

import logging
import subprocess
from typing import Callable

from .assembler import AssembledBundle, assemble
from .locator import locate
from .settings import ReleaseSettings
from .toolchain import build, prepare_output_dir, resolve_toolchain, strip_archives

logger = logging.getLogger(__name__)


def run_release(
    settings: ReleaseSettings,
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> AssembledBundle:
    """Build the project under settings.project_root and package the bundle."""
    logger.info("=" * 60)
    logger.info("Release bundle builder")
    logger.info(f"Configuration: {settings.build_configuration}")
    logger.info(f"Output root: {settings.output_root}")
    logger.info("=" * 60)

    publish_dir = prepare_output_dir(settings.publish_dir)

    project = locate(settings.project_root, settings.descriptor_pattern, settings.web_marker)

    executable = resolve_toolchain(
        settings.toolchain_name,
        settings.toolchain_candidates,
        settings.search_path,
    )
    build(
        executable,
        project,
        settings.build_configuration,
        publish_dir,
        verb=settings.build_verb,
        runner=runner,
    )

    removed = strip_archives(publish_dir)
    if removed:
        logger.info(f"Removed {len(removed)} nested archive(s) from build output")

    bundle = assemble(
        publish_dir,
        settings.archive_path,
        settings.staging_dir,
        manifest_path=settings.manifest_path,
        scripts_path=settings.scripts_path,
    )

    logger.info("=" * 60)
    logger.info("Release bundle built successfully")
    logger.info(f"Bundle: {bundle.archive}")
    logger.info(f"Manifest included: {'yes' if bundle.manifest_included else 'no'}")
    logger.info(f"Hook scripts: {', '.join(bundle.scripts) or 'none'}")
    logger.info("=" * 60)
    return bundle
