"""Finding update packages in the staging directory.

``scan_archives`` is the per-cycle discovery pass. ``StagingWatcher`` is an
optional watchdog observer that wakes the main loop early when a new
archive lands in staging instead of waiting out the full cycle delay.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Iterator

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from auto_updater.update.update_config import ARCHIVE_EXTENSION

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 2.0


def has_archive_extension(path: str, extension: str = ARCHIVE_EXTENSION) -> bool:
    """Case-sensitive extension match (``app.ZIP`` is not an archive)."""
    _, ext = os.path.splitext(path)
    return ext == extension


def scan_archives(staging_dir, extension: str = ARCHIVE_EXTENSION) -> Iterator[Path]:
    """Yield archive files under ``staging_dir``, recursively.

    Each call starts a fresh traversal. A missing or unreadable staging
    directory yields nothing.
    """
    for root, dirs, files in os.walk(str(staging_dir)):
        dirs.sort()
        for name in sorted(files):
            if has_archive_extension(name, extension):
                yield Path(root) / name


class ArchiveArrivalHandler(FileSystemEventHandler):
    """Watchdog handler that signals when an archive appears or changes."""

    def __init__(self, wake_event: threading.Event, extension: str = ARCHIVE_EXTENSION):
        super().__init__()
        self.wake_event = wake_event
        self.extension = extension
        self.last_event_at: float | None = None

    def _touch(self, path: str):
        if not has_archive_extension(path, self.extension):
            return
        self.last_event_at = time.monotonic()
        logger.debug("Archive activity in staging: %s", path)
        self.wake_event.set()

    def on_created(self, event):
        if not event.is_directory:
            self._touch(event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._touch(event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._touch(event.dest_path)


class StagingWatcher:
    """Observes the staging directory and wakes the main loop on arrivals.

    ``settle`` blocks until no archive activity has been seen for
    ``settle_seconds`` so a package still being copied in is not picked up
    half-written.
    """

    def __init__(self, staging_dir, wake_event: threading.Event,
                 settle_seconds: float = DEFAULT_SETTLE_SECONDS):
        self.staging_dir = Path(staging_dir)
        self.settle_seconds = settle_seconds
        self.handler = ArchiveArrivalHandler(wake_event)
        self.observer = Observer()
        self._running = False

    def start(self):
        self.observer.schedule(self.handler, str(self.staging_dir), recursive=True)
        self.observer.start()
        self._running = True
        logger.info("Watching staging directory: %s", self.staging_dir)

    def stop(self):
        if self._running:
            self.observer.stop()
            self.observer.join()
            self._running = False
            logger.info("Staging watcher stopped.")

    def settle(self, stop_event: threading.Event | None = None):
        while True:
            last = self.handler.last_event_at
            if last is None:
                return
            remaining = self.settle_seconds - (time.monotonic() - last)
            if remaining <= 0:
                return
            if stop_event is not None:
                if stop_event.wait(remaining):
                    return
            else:
                time.sleep(remaining)
