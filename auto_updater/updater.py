"""Main update loop and command-line entry point.

Every cycle scans the staging directory once and processes each archive
found, one at a time:

    scan -> open check -> wait for process exit -> apply -> history
                 |
                 +-> unreadable -> quarantine

then sleeps for the cycle delay. The loop runs until the process is
signalled; an archive that is being applied is always finished first.

Usage:
    python run.py
    python run.py --config D:\\updater\\config.txt --watch
    python run.py --once
"""

import argparse
import logging
import os
import signal
import threading
from datetime import datetime, timedelta
from pathlib import Path

from auto_updater.config import UpdaterConfig, load_config
from auto_updater.errors import (
    ArchiveUnreadable,
    BackupDirUnavailable,
    ConfigError,
    LayoutError,
    UpdaterError,
)
from auto_updater.logs.error_log import attach_error_log, open_error_log
from auto_updater.monitor.archive_scanner import StagingWatcher, scan_archives
from auto_updater.monitor.process_gate import ProcessGate
from auto_updater.notify.notifier import Notifier
from auto_updater.update.batch import UpdateBatch
from auto_updater.update.filesystem import LocalFileSystem
from auto_updater.update.lifecycle import ArchiveLifecycleManager
from auto_updater.update.path_layout import PathLayout, ensure_layout
from auto_updater.update.update_applier import UpdateApplier
from auto_updater.update.update_config import CONFIG_FILE_NAME, CYCLE_DELAY_SECONDS

logger = logging.getLogger("auto_updater")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Updater:
    """Ties scanning, process gating, applying and archiving together."""

    def __init__(
        self,
        config: UpdaterConfig,
        notifier: Notifier = None,
        gate: ProcessGate = None,
        applier: UpdateApplier = None,
        lifecycle: ArchiveLifecycleManager = None,
        filesystem: LocalFileSystem = None,
        watch: bool = False,
        cycle_delay: float = CYCLE_DELAY_SECONDS,
        clock=datetime.now,
    ):
        self.config = config
        self.layout = PathLayout.from_config(config)
        self.notifier = notifier or Notifier()
        self.cycle_delay = cycle_delay
        self.clock = clock

        self._stop = threading.Event()
        self._wake = threading.Event()

        fs = filesystem or LocalFileSystem()
        self.gate = gate or ProcessGate(
            self.notifier, sleep=self._stop.wait, stop_event=self._stop,
        )
        self.applier = applier or UpdateApplier(filesystem=fs)
        self.lifecycle = lifecycle or ArchiveLifecycleManager(self.layout, filesystem=fs)
        self.watcher = (
            StagingWatcher(self.layout.update_staging_dir, self._wake) if watch else None
        )
        self._started = False
        self._last_batch_time = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Create the working directories. Raises LayoutError on failure."""
        ensure_layout(self.layout)
        if self.watcher:
            self.watcher.start()
        self._started = True
        logger.info("Updater ready. Staging directory: %s", self.layout.update_staging_dir)

    def stop(self):
        """Request a graceful stop; safe to call from a signal handler."""
        self._stop.set()
        self._wake.set()

    def close(self):
        if self.watcher:
            self.watcher.stop()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    # ------------------------------------------------------------------
    # One cycle
    # ------------------------------------------------------------------

    def _batch_time(self) -> datetime:
        """Timestamp for a new batch, at least one second after the last one.

        Stamps have one-second resolution; two batches sharing a stamp would
        share a backup folder.
        """
        now = self.clock().replace(microsecond=0)
        if self._last_batch_time is not None and now <= self._last_batch_time:
            now = self._last_batch_time + timedelta(seconds=1)
        self._last_batch_time = now
        return now

    def process_archive(self, archive_path) -> bool:
        """Handle one discovered archive. Returns True if it was applied."""
        batch = UpdateBatch(archive_path=Path(archive_path), timestamp=self._batch_time())

        # Unreadable archives are quarantined without waiting on the process
        try:
            self.applier.check_readable(batch.archive_path)
        except ArchiveUnreadable as exc:
            logger.warning("%s", exc)
            self.lifecycle.quarantine(batch)
            return False

        if not self.gate.wait_until_absent(self.config.process_name):
            return False

        try:
            result = self.applier.apply(
                batch.archive_path,
                self.layout.target_dir,
                batch.backup_dir(self.layout),
            )
        except ArchiveUnreadable as exc:
            logger.warning("%s", exc)
            self.lifecycle.quarantine(batch)
            return False
        except BackupDirUnavailable as exc:
            # Left in staging; retried next cycle
            logger.warning("%s", exc)
            return False

        self.lifecycle.archive_to_history(batch)
        if not result.complete:
            logger.warning(
                "Update %s was only partially applied; originals are in %s",
                batch.archive_name, batch.backup_dir(self.layout),
            )
        return True

    def run_cycle(self) -> int:
        """Scan once and process every archive found. Returns the applied count."""
        applied = 0
        for archive_path in scan_archives(self.layout.update_staging_dir):
            if self.stopping:
                break
            try:
                if self.process_archive(archive_path):
                    applied += 1
            except UpdaterError as exc:
                logger.warning("Skipping %s: %s", archive_path, exc)

        if applied:
            self.notifier.update_completed()
        return applied

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self):
        """Cycle until ``stop()`` is called."""
        if not self._started:
            self.start()
        try:
            while not self.stopping:
                try:
                    self.run_cycle()
                except Exception:
                    logger.exception("Update cycle failed")
                self._idle()
        finally:
            self.close()
        logger.info("Updater stopped.")

    def _idle(self):
        self._wake.wait(self.cycle_delay)
        self._wake.clear()
        if self.watcher and not self.stopping:
            self.watcher.settle(self._stop)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Unattended local software updater")
    parser.add_argument(
        "-c", "--config",
        default=str(Path(os.getcwd()) / CONFIG_FILE_NAME),
        help=f"Path to the key=value config file (default: ./{CONFIG_FILE_NAME})",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console logging level",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Start a cycle as soon as an archive lands in staging",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle and exit",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
    )

    try:
        error_log = open_error_log()
    except OSError as exc:
        logger.critical("Unable to create error log file: %s", exc)
        Notifier().startup_failed("Unable to create error log file")
        return 1
    attach_error_log(error_log)

    try:
        config = load_config(args.config)
        updater = Updater(config, watch=args.watch)
        try:
            updater.start()
        except OSError as exc:
            # The watcher failed after the layout was created
            updater.close()
            raise LayoutError(
                f"Unable to watch {updater.layout.update_staging_dir}: {exc}",
                path=updater.layout.update_staging_dir,
            ) from exc
    except (ConfigError, LayoutError) as exc:
        logger.critical("%s", exc)
        return 1

    if args.once:
        try:
            updater.run_cycle()
        finally:
            updater.close()
        return 0

    def handle_signal(signum, frame):
        logger.info("Received signal %s, shutting down...", signum)
        updater.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    updater.run()
    return 0
