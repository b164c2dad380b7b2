"""One unit of update work: an archive plus the moment it was discovered."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from auto_updater.update.path_layout import PathLayout
from auto_updater.update.update_config import format_stamp


@dataclass(frozen=True)
class UpdateBatch:
    """An archive and the timestamp shared by all of its folders.

    The backup, history and quarantine folders of a batch are all named
    after ``stamp`` so they can be correlated afterwards.
    """
    archive_path: Path
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def stamp(self) -> str:
        return format_stamp(self.timestamp)

    @property
    def archive_name(self) -> str:
        return self.archive_path.name

    def backup_dir(self, layout: PathLayout) -> Path:
        return layout.backup_root_dir / self.stamp

    def history_dir(self, layout: PathLayout) -> Path:
        return layout.update_history_dir / self.stamp

    def quarantine_dir(self, layout: PathLayout) -> Path:
        return layout.backup_error_dir / self.stamp
