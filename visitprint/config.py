"""
Configuration loading and logging setup.

Configuration is a YAML file merged over DEFAULT_CONFIG, so a partial file
(or none at all) still yields every section components read from.
"""

import copy
import sys
from pathlib import Path
from typing import Optional, Union

import yaml
from loguru import logger


DEFAULT_CONFIG = {
    "general": {
        "app_name": "VisitPrint",
        "log_level": "INFO",
        "debug": False
    },
    "logging": {
        "file": "data/logs/visitprint.log",
        "max_size": "10 MB",
        "backup_count": 5
    },
    "server": {
        "endpoint": None,
        "timeout": 10
    },
    "persistence": {
        "local_db_path": "data/visitprint.db",
        "origin": "default",
        "cookie_enabled": True,
        "etag_enabled": True
    },
    "observation": {
        "timeout_ms": 10000,
        "thresholds": {
            "move": 50,
            "scroll": 5
        }
    },
    "ultrasonic": {
        "repeat_count": 3,
        "level_threshold": 150,
        "realtime": True
    },
    "scoring": {
        "threshold": 60,
        "weights": {}
    }
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = "config/config.yaml") -> dict:
    """Load configuration from YAML file, falling back to defaults."""
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_file, "r") as f:
        loaded = yaml.safe_load(f) or {}

    return _merge(DEFAULT_CONFIG, loaded)


def setup_logging(config: dict, log_to_file: bool = True) -> None:
    """Configure logging based on config."""
    log_config = config.get("logging", {})
    log_level = config.get("general", {}).get("log_level", "INFO")

    # Remove default logger and add custom configuration
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | <level>{message}</level>"
    )

    if not log_to_file or not log_config.get("file"):
        return

    log_file = Path(log_config["file"])
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(log_file),
        level=log_level,
        rotation=log_config.get("max_size", "10 MB"),
        retention=log_config.get("backup_count", 5),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name} | {message}"
    )
