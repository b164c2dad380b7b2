"""Updater layout names, timing and naming formats."""

import os
import platform

# Working directories created inside the configured roots. These names are
# shared with existing deployments and must not change.
STAGING_DIR_NAME = "__auto_updater"
HISTORY_DIR_NAME = "__auto_updater_history"
ERROR_DIR_NAME = "__auto_updater_error"

# Update packages are recognised by this extension (case-sensitive)
ARCHIVE_EXTENSION = ".zip"

# Process names in the config must carry this suffix
EXECUTABLE_SUFFIX = ".exe" if platform.system() == "Windows" else ""

# Timing
PROCESS_POLL_SECONDS = 1.0
CYCLE_DELAY_SECONDS = 30.0

# Files written into the working directory
CONFIG_FILE_NAME = "config.txt"
ERROR_LOG_FILE_NAME = "error_log_auto_updater.txt"

# Config keys, in the order they are reported when missing
CONFIG_KEYS = ("process", "target_dir", "update_dir", "backup_dir")

PATH_SEPARATOR = os.sep


def format_stamp(ts) -> str:
    """Render a batch timestamp as ``YYYY-M-D-H-Min-S`` (no zero padding)."""
    return f"{ts.year}-{ts.month}-{ts.day}-{ts.hour}-{ts.minute}-{ts.second}"
