"""
Drive cleaner configuration loader.

Loads config/drive_cleaner.yaml (root key `drive_cleaner`), overlays
DRIVE_CLEANER_* environment variables, validates with pydantic.

Environment variables:
    DRIVE_CLEANER_ROOT_FOLDER_IDS='["id1", "id2"]'   (JSON list)
    DRIVE_CLEANER_DUPLICATION_WINDOW_HOURS=24
    DRIVE_CLEANER_DRY_RUN=false
    ...one per CleanerConfig field
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import structlog
import yaml
from pydantic import ValidationError

from agents.src.agents.drive_cleaner.models import CleanerConfig
from config.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

ENV_PREFIX = "DRIVE_CLEANER_"
ROOT_KEY = "drive_cleaner"
DEFAULT_CONFIG_PATH = Path("config/drive_cleaner.yaml")

LIST_FIELDS = {"root_folder_ids", "excluded_folder_ids", "excluded_extensions"}
BOOL_FIELDS = {"merge_folders_enabled", "merge_folders_recursive", "dry_run"}

# Written by `scripts/drive_cleaner_config.py --init`
DEFAULT_SETTINGS: dict[str, Any] = {
    "root_folder_ids": ["REPLACE_WITH_YOUR_FOLDER_ID"],
    "duplication_window_hours": 24,
    "max_execution_time_seconds": 300,
    "excluded_folder_ids": [],
    "excluded_extensions": [],
    "folder_sort_mode": "LAST_UPDATED",
    "file_age_filter_days": 0,
    "merge_folders_enabled": False,
    "merge_folders_recursive": True,
    "merge_keep_folder_strategy": "OLDEST",
    "dry_run": True,
}


def _parse_env_value(field: str, raw: str) -> Any:
    """Convert one environment string into the value pydantic expects."""
    if field in LIST_FIELDS:
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            raise ConfigurationError(f"{ENV_PREFIX}{field.upper()} must be a JSON list: {raw}")
        if not isinstance(value, list):
            raise ConfigurationError(f"{ENV_PREFIX}{field.upper()} must be a JSON list: {raw}")
        return value

    if field in BOOL_FIELDS:
        lowered = raw.strip().lower()
        if lowered not in {"true", "false"}:
            raise ConfigurationError(f"{ENV_PREFIX}{field.upper()} must be true or false: {raw}")
        return lowered == "true"

    return raw


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Drive cleaner config not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}")

    if not isinstance(raw, dict) or ROOT_KEY not in raw:
        raise ConfigurationError(f"Invalid drive cleaner config: missing '{ROOT_KEY}' root key")

    section = raw[ROOT_KEY] or {}
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"Invalid drive cleaner config: '{ROOT_KEY}' must be a mapping, got {type(section).__name__}"
        )

    return dict(section)


def load_cleaner_config(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> CleanerConfig:
    """
    Load and validate the run configuration.

    Args:
        path: YAML file; None means environment only
        env: Environment mapping (os.environ by default)

    Returns:
        Frozen CleanerConfig

    Raises:
        ConfigurationError: missing file, bad value, or empty root folder list
    """
    env = os.environ if env is None else env
    settings: dict[str, Any] = _read_yaml(Path(path)) if path is not None else {}

    for field in CleanerConfig.model_fields:
        env_name = f"{ENV_PREFIX}{field.upper()}"
        if env_name in env:
            settings[field] = _parse_env_value(field, env[env_name])

    try:
        config = CleanerConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid drive cleaner config: {e}")

    if not config.root_folder_ids:
        raise ConfigurationError("root_folder_ids is empty, run the config setup first")

    logger.info(
        "drive_cleaner.config_loaded",
        config_path=str(path) if path is not None else None,
        roots=len(config.root_folder_ids),
        dry_run=config.dry_run,
    )
    return config


def describe_config(config: CleanerConfig) -> dict[str, Any]:
    """Flat, log-friendly view of a configuration."""
    return {
        "mode": "dry_run" if config.dry_run else "live",
        "root_folders": len(config.root_folder_ids),
        "duplication_window_hours": config.duplication_window_hours,
        "max_execution_time_seconds": config.max_execution_time_seconds,
        "folder_sort_mode": config.folder_sort_mode.value,
        "file_age_filter_days": config.file_age_filter_days,
        "excluded_folders": len(config.excluded_folder_ids),
        "excluded_extensions": sorted(config.excluded_extensions) or "none",
        "merge_folders_enabled": config.merge_folders_enabled,
        "merge_folders_recursive": config.merge_folders_recursive,
        "merge_keep_folder_strategy": config.merge_keep_folder_strategy.value,
    }


def write_default_config(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> bool:
    """
    Write the default YAML if the file does not exist yet.

    Returns:
        True if written, False if an existing file was kept
    """
    path = Path(path)
    if path.exists():
        logger.info("drive_cleaner.config_exists", config_path=str(path))
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump({ROOT_KEY: DEFAULT_SETTINGS}, f, sort_keys=False)

    logger.info("drive_cleaner.config_written", config_path=str(path))
    return True
