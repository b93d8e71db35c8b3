"""
Command-line interface for capdiag.

Loads the configuration, applies command-line overrides and runs one fleet
analysis over a capture tree.
"""

import argparse
import dataclasses
import logging
import sys
import tomllib
from pathlib import Path
from typing import List, Optional

from ..config import get_config, set_config_path
from ..models.config import AppConfig
from ..validation import (
    CaptureError,
    ValidationError,
    handle_cli_error,
    validate_positive_integer,
)
from .orchestrator import FleetRunner

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="capdiag",
        description="Diagnose CPU contention and resource anomalies across a fleet of performance captures.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to config.toml (defaults to conf/config.toml).")
    parser.add_argument("-s", "--source", type=Path, help="Root directory scanned recursively for captures.")
    parser.add_argument("-j", "--max-concurrency", type=str, help="Maximum number of captures analyzed at once.")
    parser.add_argument("-d", "--decoder", type=Path, help="Path to the capture decoder executable.")
    parser.add_argument("-o", "--output", type=Path, help="Directory for the fleet summary and reports.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of ``config`` with command-line values taking precedence."""
    discovery, scheduler, decoder, output = config.discovery, config.scheduler, config.decoder, config.output

    if args.source is not None:
        discovery = dataclasses.replace(discovery, source_root=args.source.expanduser())
    if args.max_concurrency is not None:
        concurrency = validate_positive_integer(
            args.max_concurrency, min_value=1, max_value=1024, field_name="--max-concurrency"
        )
        scheduler = dataclasses.replace(scheduler, max_concurrency=concurrency)
    if args.decoder is not None:
        decoder = dataclasses.replace(decoder, binary=args.decoder.expanduser())
    if args.output is not None:
        output = dataclasses.replace(output, output_dir=args.output.expanduser())

    return dataclasses.replace(
        config, discovery=discovery, scheduler=scheduler, decoder=decoder, output=output
    )


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line entry point.

    Exits with status 1 on configuration errors, an unresolvable decoder or an
    empty capture tree. Per-capture failures do not change the exit status.
    """
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.config is not None:
        set_config_path(args.config)

    try:
        config = apply_overrides(get_config(), args)
    except (FileNotFoundError, tomllib.TOMLDecodeError, ValidationError) as e:
        handle_cli_error(error=e, context="configuration loading", exit_code=1, logger=logger)

    logger.info(f"Scanning {config.discovery.source_root} for captures")
    try:
        result = FleetRunner(config).run()
    except CaptureError as e:
        handle_cli_error(error=e, context="fleet run", exit_code=1, logger=logger)

    logger.info(f"Summary written to: {result.summary_path}")


if __name__ == "__main__":
    main_cli()
