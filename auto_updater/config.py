"""Startup configuration for the updater.

The configuration is a plain ``key=value`` text file read once at startup::

    process=MyApp.exe
    target_dir=C:\\Program Files\\MyApp
    update_dir=D:\\updates
    backup_dir=D:\\backups

All four keys are mandatory. Unknown keys are ignored.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from auto_updater.errors import ConfigError
from auto_updater.update.update_config import (
    CONFIG_KEYS,
    EXECUTABLE_SUFFIX,
    PATH_SEPARATOR,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdaterConfig:
    """Immutable configuration shared by every component."""
    process_name: str
    target_dir: str
    update_dir: str
    backup_dir: str


def normalize_root(path: str) -> str:
    """Return ``path`` with a trailing path separator."""
    if path.endswith(PATH_SEPARATOR) or path.endswith("/"):
        return path
    return path + PATH_SEPARATOR


def parse_config_lines(lines) -> dict[str, str]:
    """Collect recognised ``key=value`` pairs. The first occurrence wins."""
    values: dict[str, str] = {}
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key in CONFIG_KEYS and key not in values:
            values[key] = value.strip()
    return values


def _validate_process(value: str) -> str:
    if not value or not value.endswith(EXECUTABLE_SUFFIX):
        raise ConfigError(
            f"The name {value} provided for the process is not a valid one"
        )
    return value


def _validate_dir(value: str) -> str:
    if not value or not os.path.exists(value):
        raise ConfigError(f"The path {value} does not exist", path=value)
    return normalize_root(value)


def config_from_mapping(values: dict[str, str]) -> UpdaterConfig:
    """Validate parsed values and build the config record."""
    for key in CONFIG_KEYS:
        if key not in values:
            raise ConfigError(f"No value given for '{key}'")

    return UpdaterConfig(
        process_name=_validate_process(values["process"]),
        target_dir=_validate_dir(values["target_dir"]),
        update_dir=_validate_dir(values["update_dir"]),
        backup_dir=_validate_dir(values["backup_dir"]),
    )


def load_config(config_path) -> UpdaterConfig:
    """Read and validate the config file at ``config_path``.

    Raises ConfigError if the file is missing, unreadable, or if any key is
    missing or invalid.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Config file doesn't exist: {path}", path=path)
    try:
        with open(path, encoding="utf-8") as f:
            values = parse_config_lines(f)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to open {path}: {exc}", path=path) from exc

    config = config_from_mapping(values)
    logger.info(
        "Loaded config: process=%s target=%s update=%s backup=%s",
        config.process_name, config.target_dir,
        config.update_dir, config.backup_dir,
    )
    return config
