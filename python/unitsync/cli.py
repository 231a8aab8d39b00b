"""
Command line entry point.

Usage:
    unitsync --config unitsync.yaml
    unitsync --once          # sync every unit and exit

Or via environment variables:
    UNITSYNC_CONFIG=/path/to/unitsync.yaml unitsync
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from unitsync import __version__
from unitsync.config import CONFIG_ENV_VAR, DEFAULT_CONFIG_NAME, load_config
from unitsync.errors import NoUnitsError, UnitSyncError
from unitsync.logging_config import setup_logging

EXIT_OK = 0
EXIT_STARTUP_ERROR = 1
EXIT_SYNC_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unitsync",
        description="Keep a generated destination file in step with a tree of source units",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Config file (default: ${CONFIG_ENV_VAR} or ./{DEFAULT_CONFIG_NAME})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Sync every unit once and exit instead of watching",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Also write daily log files to this directory",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def sync_once(config) -> int:
    """Run a single full sync."""
    from unitsync.build import sync_units
    from unitsync.ignore_patterns import build_ignore_spec
    from unitsync.units import discover_units

    logger = logging.getLogger("unitsync")
    units = discover_units(config.source_root, config.extension, build_ignore_spec(config.ignore))
    if not units:
        raise NoUnitsError(f"No unit directories found in {config.source_root}")
    sync_units(config, units)
    logger.info(f"Synced {len(units)} unit(s) to {config.destination}")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_dir=args.log_dir,
    )

    try:
        config = load_config(args.config)
    except UnitSyncError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_STARTUP_ERROR

    if args.once:
        try:
            return sync_once(config)
        except NoUnitsError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_STARTUP_ERROR
        except (UnitSyncError, OSError):
            logger.exception("Sync failed")
            return EXIT_SYNC_FAILED

    from unitsync.watcher import SyncWatcher

    watcher = SyncWatcher(config)
    try:
        asyncio.run(watcher.run())
    except NoUnitsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_STARTUP_ERROR
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        watcher.stop()
        return EXIT_OK
    except (UnitSyncError, OSError):
        logger.exception("Sync failed - stopping")
        return EXIT_SYNC_FAILED

    return EXIT_OK
