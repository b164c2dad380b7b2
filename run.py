"""Launcher for the auto updater.

Reads ``config.txt`` from the working directory (or ``--config``), writes
``error_log_auto_updater.txt`` next to it and keeps applying update
packages dropped into ``<update_dir>/__auto_updater`` until stopped.

Usage:
    python run.py
    python run.py --config config/config.txt --log-level DEBUG
    python run.py --watch
    python run.py --once
"""

import sys

from auto_updater.updater import main


if __name__ == "__main__":
    sys.exit(main())
