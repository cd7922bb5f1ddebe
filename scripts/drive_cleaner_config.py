#!/usr/bin/env python3
"""
Drive cleaner configuration helper.

Writes the default config/drive_cleaner.yaml (--init) or validates and shows
the effective configuration (YAML + DRIVE_CLEANER_* environment).

Usage:
    python scripts/drive_cleaner_config.py --init
    python scripts/drive_cleaner_config.py --env-file .env.drive
    python scripts/drive_cleaner_config.py --log-format json
"""

import argparse
import os
import sys
from pathlib import Path

import structlog
from dotenv import load_dotenv

# Add repo root to path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from agents.src.agents.drive_cleaner.config_loader import (  # noqa: E402
    DEFAULT_CONFIG_PATH,
    describe_config,
    load_cleaner_config,
    write_default_config,
)
from config.exceptions import ConfigurationError  # noqa: E402
from config.logging import configure_logging  # noqa: E402

logger = structlog.get_logger()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Set up or show the drive cleaner configuration")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="YAML config path")
    parser.add_argument("--env-file", default=None, help="Optional .env file to load first")
    parser.add_argument("--init", action="store_true", help="Write default config if missing")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"), help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument(
        "--log-format",
        choices=["json", "console"],
        default=os.getenv("LOG_FORMAT", "console"),
        help="JSON lines or human readable output",
    )
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, json_format=args.log_format == "json")

    if args.env_file:
        load_dotenv(args.env_file)

    if args.init:
        written = write_default_config(args.config)
        if written:
            logger.info(
                "drive_cleaner_config_next_steps",
                message="Set root_folder_ids, review exclusions, keep dry_run=true for the first run",
            )
        return 0

    try:
        config = load_cleaner_config(args.config)
    except ConfigurationError as e:
        logger.error("drive_cleaner_config_invalid", error=str(e), hint="Run with --init first")
        return 1

    logger.info(
        "drive_cleaner_config",
        root_folder_ids=config.root_folder_ids,
        excluded_folder_ids=sorted(config.excluded_folder_ids),
        **describe_config(config),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
