"""Working directories derived from the configured roots.

    update_dir/
    +-- __auto_updater/              staging: archives are dropped here
    +-- __auto_updater_history/      applied archives, one folder per batch
    backup_dir/
    +-- __auto_updater_error/        unreadable archives, one folder per batch
    +-- 2024-3-7-9-5-12/             files overwritten by one batch
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from auto_updater.config import UpdaterConfig
from auto_updater.errors import LayoutError
from auto_updater.update.update_config import (
    ERROR_DIR_NAME,
    HISTORY_DIR_NAME,
    STAGING_DIR_NAME,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathLayout:
    target_dir: Path
    update_staging_dir: Path
    update_history_dir: Path
    backup_root_dir: Path
    backup_error_dir: Path

    @classmethod
    def from_config(cls, config: UpdaterConfig) -> "PathLayout":
        update_dir = Path(config.update_dir)
        backup_dir = Path(config.backup_dir)
        return cls(
            target_dir=Path(config.target_dir),
            update_staging_dir=update_dir / STAGING_DIR_NAME,
            update_history_dir=update_dir / HISTORY_DIR_NAME,
            backup_root_dir=backup_dir,
            backup_error_dir=backup_dir / ERROR_DIR_NAME,
        )

    @property
    def working_dirs(self) -> tuple[Path, ...]:
        return (
            self.update_staging_dir,
            self.update_history_dir,
            self.backup_root_dir,
            self.backup_error_dir,
        )


def ensure_layout(layout: PathLayout) -> PathLayout:
    """Create every working directory that does not exist yet.

    Roots are expected to exist already, so creation is not recursive.
    Raises LayoutError on anything other than "already exists".
    """
    for directory in layout.working_dirs:
        try:
            directory.mkdir(exist_ok=True)
        except OSError as exc:
            raise LayoutError(
                f"Unable to create folder {directory} - {exc}", path=directory,
            ) from exc
        logger.debug("Working directory ready: %s", directory)
    return layout
