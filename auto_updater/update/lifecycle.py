"""Where an archive goes once the updater is done with it.

Applied archives (fully or partially) move to the history folder, unreadable
ones to the error quarantine. Both moves are best-effort: on failure the
archive stays in staging and the next cycle sees it again.
"""

import logging
from pathlib import Path

from auto_updater.update.batch import UpdateBatch
from auto_updater.update.filesystem import LocalFileSystem
from auto_updater.update.path_layout import PathLayout

logger = logging.getLogger(__name__)


class ArchiveLifecycleManager:
    """Moves processed archives into history or quarantine."""

    def __init__(self, layout: PathLayout, filesystem: LocalFileSystem = None):
        self.layout = layout
        self.fs = filesystem or LocalFileSystem()

    def quarantine(self, batch: UpdateBatch) -> bool:
        """Move an unreadable archive into ``__auto_updater_error/<stamp>/``."""
        return self._relocate(batch, batch.quarantine_dir(self.layout))

    def archive_to_history(self, batch: UpdateBatch) -> bool:
        """Move an applied archive into ``__auto_updater_history/<stamp>/``."""
        return self._relocate(batch, batch.history_dir(self.layout))

    def _relocate(self, batch: UpdateBatch, folder: Path) -> bool:
        try:
            self.fs.make_dir(folder)
        except OSError as exc:
            logger.warning("Unable to create folder %s - %s", folder, exc)
            return False

        dest = folder / batch.archive_name
        try:
            self.fs.relocate(batch.archive_path, dest)
        except OSError as exc:
            logger.warning("Unable to move archive %s - %s", batch.archive_path, exc)
            return False

        logger.info("Moved %s -> %s", batch.archive_path, dest)
        return True
