"""Applying one update package to the target directory.

For every file in the archive that would overwrite an existing file, the
existing file is first moved into the batch's backup folder, mirroring its
relative path::

    backup_dir/
    +-- 2024-3-7-9-5-12/
    |   +-- app.exe
    |   +-- plugins/
    |       +-- renderer.dll

If that move fails, the batch stops immediately: a target file is never
overwritten without its original bytes being preserved. A failure while
writing new content also stops the batch. Files already written stay in
place (partial application), and everything they replaced is in the
backup folder.
"""

import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path

from auto_updater.errors import (
    ApplyError,
    BackupDirUnavailable,
    BackupMoveFailed,
    ContentWriteFailed,
    EntryUnreadable,
)
from auto_updater.update.archive_source import (
    ArchiveEntry,
    ZipArchiveSource,
    is_safe_entry_name,
)
from auto_updater.update.filesystem import LocalFileSystem

logger = logging.getLogger(__name__)

# Errors raised while reading a member out of the container
_ENTRY_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    RuntimeError,
    NotImplementedError,
    zipfile.BadZipFile,
    zlib.error,
)


@dataclass
class ApplyResult:
    """Outcome of applying one archive."""
    archive_path: str
    applied_count: int = 0
    backed_up: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: ApplyError | None = None

    @property
    def complete(self) -> bool:
        """True if every entry was processed without a batch-fatal error."""
        return self.error is None


class UpdateApplier:
    """Extracts update packages with backup-before-overwrite semantics."""

    def __init__(self, filesystem: LocalFileSystem = None, archive_source=None):
        self.fs = filesystem or LocalFileSystem()
        self.archive_source = archive_source or ZipArchiveSource()

    def check_readable(self, archive_path):
        """Raise ArchiveUnreadable if ``archive_path`` cannot be opened."""
        with self.archive_source.open(archive_path):
            pass

    def apply(self, archive_path, target_dir, batch_backup_dir) -> ApplyResult:
        """Apply ``archive_path`` onto ``target_dir``.

        Raises ArchiveUnreadable if the archive cannot be opened and
        BackupDirUnavailable if the backup folder cannot be created; in both
        cases no target file has been touched. Failures after extraction
        has started are reported through ``ApplyResult.error``.
        """
        target_dir = Path(target_dir)
        backup_dir = Path(batch_backup_dir)
        result = ApplyResult(archive_path=str(archive_path))

        with self.archive_source.open(archive_path) as reader:
            try:
                self.fs.make_dir(backup_dir)
            except OSError as exc:
                raise BackupDirUnavailable(
                    f"Unable to create folder {backup_dir} - {exc}", path=backup_dir,
                ) from exc

            for entry in reader.entries():
                if not is_safe_entry_name(entry.name):
                    logger.warning(
                        "Skipping unsafe entry %r in %s", entry.name, archive_path,
                    )
                    result.skipped.append(entry.name)
                    continue
                try:
                    if entry.is_directory:
                        self._apply_directory(entry, target_dir, backup_dir, result)
                    else:
                        self._apply_file(entry, target_dir, backup_dir, result)
                except ApplyError as exc:
                    logger.warning("%s", exc)
                    result.error = exc
                    break

        if result.complete:
            logger.info(
                "Applied %s: %d entries, %d file(s) backed up to %s",
                archive_path, result.applied_count, len(result.backed_up), backup_dir,
            )
        else:
            logger.warning(
                "Update from %s stopped after %d entries",
                archive_path, result.applied_count,
            )
        return result

    def _apply_directory(self, entry: ArchiveEntry, target_dir: Path,
                         backup_dir: Path, result: ApplyResult):
        rel = entry.relative_path
        target = target_dir / rel

        if self.fs.is_dir(target):
            # Existing folder: files inside it may need a backup destination
            mirror = backup_dir / rel
            try:
                self.fs.make_dir(mirror, parents=True)
            except OSError as exc:
                logger.warning(
                    "Unable to create folder in backup directory %s - %s", mirror, exc,
                )
                result.skipped.append(entry.name)
                return
        else:
            try:
                self.fs.make_dir(target, parents=True)
            except OSError as exc:
                logger.warning(
                    "Unable to create folder in target directory %s - %s", target, exc,
                )
                result.skipped.append(entry.name)
                return

        result.applied_count += 1

    def _apply_file(self, entry: ArchiveEntry, target_dir: Path,
                    backup_dir: Path, result: ApplyResult):
        rel = entry.relative_path
        target = target_dir / rel
        backup = backup_dir / rel

        try:
            stream = entry.open()
        except _ENTRY_ERRORS as exc:
            raise EntryUnreadable(
                f"Unable to open item {entry.name} inside the archive - {exc}",
                path=entry.name,
            ) from exc

        with stream:
            if self.fs.exists(target):
                try:
                    self.fs.make_dir(backup.parent, parents=True)
                    self.fs.move(target, backup)
                except OSError as exc:
                    raise BackupMoveFailed(
                        f"Unable to move the file {target} inside the backup "
                        f"folder {backup_dir} - {exc}",
                        path=target,
                    ) from exc
                result.backed_up.append(rel)
                logger.info("Backed up %s -> %s", target, backup)
            else:
                logger.warning("File %s does not exist", target)

            try:
                self.fs.make_dir(target.parent, parents=True)
                self.fs.write_stream(target, stream)
            except _ENTRY_ERRORS as exc:
                raise ContentWriteFailed(
                    f"Unable to transfer file from archive to {target} - {exc}",
                    path=target,
                ) from exc

        result.applied_count += 1
        logger.debug("Wrote %s", target)
