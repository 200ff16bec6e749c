"""Download the runtime and install the qbrt companion app into it."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from app.config import get_app_config, load_app_config
from app.version import get_app_version
from services.runtime import ConfigurationError, ProgressReporter, build_runtime_setup_service
from shared.logging_config import LogVerbosity, ensure_app_logging

_LOGGER = logging.getLogger(__name__)

EXIT_CONFIGURATION_ERROR = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="qbrt-setup", description=__doc__)
    parser.add_argument(
        "--dist-dir",
        type=Path,
        default=None,
        help="Directory receiving the runtime install tree (default: ./dist).",
    )
    parser.add_argument(
        "--source-dir",
        type=Path,
        default=None,
        help="Directory holding the companion app files (default: current directory).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON configuration file overriding the bundled defaults.",
    )
    parser.add_argument(
        "--no-openvr",
        dest="openvr_enabled",
        action="store_false",
        default=None,
        help="Skip downloading the OpenVR support library.",
    )
    parser.add_argument(
        "--app-only",
        action="store_true",
        help="Only copy the companion app into an already installed runtime.",
    )
    parser.add_argument(
        "--log-verbosity",
        choices=[level.value for level in LogVerbosity],
        default=None,
        help="Minimum severity written to the setup log file.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_app_version()}")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    log_path = ensure_app_logging(args.log_verbosity)
    _LOGGER.info("qbrt-setup %s starting", get_app_version())

    config = load_app_config(args.config) if args.config is not None else get_app_config()
    reporter = ProgressReporter()
    try:
        service = build_runtime_setup_service(
            config=config,
            dist_dir=args.dist_dir,
            source_dir=args.source_dir,
            openvr_enabled=args.openvr_enabled,
            reporter=reporter,
        )
    except ConfigurationError as exc:
        _LOGGER.error("Unsupported platform: %s", exc)
        print(f"  Error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    if args.app_only:
        result = service.install_companion_app()
    else:
        result = service.run()

    if not result.succeeded:
        reporter.info(f"See {log_path} for details.")
    return result.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
