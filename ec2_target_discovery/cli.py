"""Argument parsing, configuration loading, and daemon bootstrap."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .config import load_config
from .daemon import Daemon
from .discovery.ec2_client import EC2Discovery
from .exceptions import ConfigError, DiscoveryError
from .logging_config import configure_logging
from .targets.file_sd import build_target_groups

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ec2-target-discovery",
        description="EC2 service discovery daemon producing Prometheus file_sd targets",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to the YAML configuration file",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run a single discovery cycle and exit",
    )
    mode.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    mode.add_argument(
        "--print",
        dest="print_targets",
        action="store_true",
        help="Run discovery once and print the target groups as JSON to stdout",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)

    if args.validate:
        logger.info("Configuration is valid")
        return 0

    try:
        if args.print_targets:
            label_maps = EC2Discovery(config.ec2).discover_all()
            json.dump(build_target_groups(label_maps), sys.stdout, indent=2, sort_keys=True)
            sys.stdout.write("\n")
            return 0

        daemon = Daemon(config)
        if args.once:
            logger.info("Running single discovery cycle (--once)")
            daemon.run_once()
        else:
            daemon.run()
    except DiscoveryError as exc:
        logger.error("Fatal error: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0

    return 0
