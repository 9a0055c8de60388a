"""
Must-gather shipper - Main entry point.

Archives the must-gather directory, fetches temporary storage credentials
and uploads the archive.

Usage:
    mustgather-ship [--source-dir DIR] [--archive-path FILE] [-v]
    python -m shipper.mustgather_shipper.main

Configuration is via environment variables (see config.py); the command
line only overrides the bundle paths and verbosity.

Invariants:
    - Exit status is 0 only if every stage succeeded
    - Any failure is logged with the stage that failed, then exits 1
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import json_log_formatter

from .config import ObservabilityConfig, ShipperConfig
from .errors import ShipperError
from .pipeline import ShipperPipeline

logger = logging.getLogger(__name__)


def setup_logging(config: ObservabilityConfig, verbose: bool = False) -> None:
    """Configure logging based on configuration.

    Args:
        config: Observability configuration
        verbose: Force DEBUG level
    """
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    for name in ("botocore", "aiobotocore", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Archive a must-gather directory and upload it to object storage"
    )
    parser.add_argument("--source-dir", help="Directory to archive (overrides BUNDLE_SOURCE_DIR)")
    parser.add_argument(
        "--archive-path", help="Temporary archive file (overrides BUNDLE_ARCHIVE_PATH)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = ShipperConfig.from_env().with_overrides(
            source_dir=args.source_dir,
            archive_path=args.archive_path,
        )
    except ShipperError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.observability, verbose=args.verbose)
    config.log_config()

    try:
        result = asyncio.run(ShipperPipeline(config).run())
    except ShipperError as e:
        logger.error(
            f"{e.stage} stage failed: {e.message}",
            extra={"stage": e.stage, "code": e.code, **e.details},
        )
        sys.exit(1)

    logger.info(
        "Must-gather archive uploaded",
        extra={"bucket": result.upload.bucket, "key": result.upload.key},
    )
    sys.exit(0)


if __name__ == "__main__":
    main()
