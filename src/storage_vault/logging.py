"""Logging configuration for the storage vault CLI.

Library modules only call ``logging.getLogger(__name__)``; this module is
used by entry points to apply the bundled YAML dictConfig.
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys
from importlib import resources
from pathlib import Path
from typing import Any, cast

import yaml

LOG_LEVEL_ENV = "STORAGE_VAULT_LOG_LEVEL"


class LoggingError(Exception):
    """Exception raised for logging configuration errors."""

    pass


def default_config_path() -> Path:
    """Return the path of the bundled logging configuration."""
    return Path(
        str(resources.files("storage_vault").joinpath("config_files", "logging.yaml"))
    )


def load_config(config_path: Path) -> dict[str, Any]:
    """Load logging configuration from a YAML file.

    Raises:
        LoggingError: If the file cannot be read or is not a mapping.

    """
    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise LoggingError(f"Failed to parse YAML config {config_path}: {e}") from e
    except OSError as e:
        raise LoggingError(f"Failed to read config file {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise LoggingError(f"Invalid configuration format in {config_path}")
    return cast(dict[str, Any], config)


def _apply_level(config: dict[str, Any], level: str) -> None:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise LoggingError(f"Invalid log level: {level}")

    for logger_config in config.get("loggers", {}).values():
        if "handlers" in logger_config:
            logger_config["level"] = level.upper()

    for handler_config in config.get("handlers", {}).values():
        handler_level = getattr(logging, str(handler_config.get("level", "INFO")), None)
        if isinstance(handler_level, int) and numeric_level < handler_level:
            handler_config["level"] = level.upper()


def setup_logging(
    config_path: Path | str | None = None,
    level: str | None = None,
    force_basic: bool = False,
) -> None:
    """Configure logging with dictConfig, falling back to basic console logging.

    Args:
        config_path: YAML configuration; the bundled one when omitted.
        level: Level for the package loggers; ``STORAGE_VAULT_LOG_LEVEL``
            when omitted.
        force_basic: Skip the YAML configuration entirely.

    """
    level = level or os.getenv(LOG_LEVEL_ENV)
    if force_basic:
        _setup_basic_logging(level or "INFO")
        return

    path = Path(config_path) if config_path is not None else default_config_path()
    try:
        config = load_config(path)
        if level:
            _apply_level(config, level)
        logging.config.dictConfig(config)
        logging.getLogger(__name__).debug("Logging configured from: %s", path)
    except (LoggingError, ValueError, KeyError) as e:
        fallback_level = level or "INFO"
        _setup_basic_logging(fallback_level)
        logging.getLogger(__name__).warning(
            "Failed to configure logging from file (%s), using basic console "
            "logging at %s level",
            e,
            fallback_level,
        )


def _setup_basic_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )
