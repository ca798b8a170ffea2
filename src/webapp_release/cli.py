#!/usr/bin/env python3
"""
Command line entry point.

    webapp-release bundle       build and package the release bundle
    webapp-release locate       print the project descriptor that would be built
    webapp-release hook NAME    run a lifecycle hook on the target host
"""

import argparse
import logging
import sys
from pathlib import Path

from .errors import ReleaseError
from .lifecycle import HOOKS, LifecycleOrchestrator, run_hook
from .locator import locate
from .pipeline import run_release
from .service_manager import get_service_manager
from .settings import BUILD_CONFIGURATIONS, load_settings

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webapp-release",
        description="Package a web application and run its deployment hooks",
    )
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    bundle = subparsers.add_parser("bundle", help="Build and package the release bundle")
    bundle.add_argument("--configuration", choices=BUILD_CONFIGURATIONS,
                        help="Build configuration (default: Release)")
    bundle.add_argument("--output-root", type=Path, help="Directory for build output and the bundle")
    bundle.add_argument("--project-root", type=Path, help="Source tree to search for the project")

    locate_cmd = subparsers.add_parser("locate", help="Print the project that would be built")
    locate_cmd.add_argument("--project-root", type=Path, help="Source tree to search for the project")

    hook = subparsers.add_parser("hook", help="Run a lifecycle hook on the target host")
    hook.add_argument("name", choices=sorted(HOOKS), help="Hook to run")
    hook.add_argument("--service", dest="service_name", help="Service name (default: webapp)")
    hook.add_argument("--target-dir", type=Path, help="Deployment target directory")

    return parser


def _cmd_bundle(args) -> int:
    settings = load_settings(
        args.config,
        build_configuration=args.configuration,
        output_root=args.output_root,
        project_root=args.project_root,
    )
    run_release(settings)
    return 0


def _cmd_locate(args) -> int:
    settings = load_settings(args.config, project_root=args.project_root)
    print(locate(settings.project_root, settings.descriptor_pattern, settings.web_marker))
    return 0


def _cmd_hook(args) -> int:
    settings = load_settings(
        args.config,
        service_name=args.service_name,
        target_dir=args.target_dir,
    )
    orchestrator = LifecycleOrchestrator.from_settings(get_service_manager("systemd"), settings)
    run_hook(orchestrator, args.name)
    return 0


COMMANDS = {
    "bundle": _cmd_bundle,
    "locate": _cmd_locate,
    "hook": _cmd_hook,
}


def main(argv=None) -> int:
    """Main entry point; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        return COMMANDS[args.command](args)
    except ReleaseError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
