"""Reading update packages.

The applier only needs "open an archive and enumerate its entries"; this
module provides that capability for ZIP containers. Tests substitute their
own source with the same ``open()`` contract.
"""

import logging
import os
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import BinaryIO, Callable, Iterator

from auto_updater.errors import ArchiveUnreadable

logger = logging.getLogger(__name__)

_OPEN_ERRORS = (OSError, zipfile.BadZipFile, ValueError, EOFError)


@dataclass
class ArchiveEntry:
    """One member of an update package."""
    name: str
    is_directory: bool
    open: Callable[[], BinaryIO]

    @property
    def relative_path(self) -> str:
        """Entry name with platform separators and no trailing slash."""
        return self.name.rstrip("/").replace("/", os.sep)


def is_safe_entry_name(name: str) -> bool:
    """Reject names that would resolve outside the extraction root."""
    normalized = name.replace("\\", "/")
    if not normalized.strip("/"):
        return False
    pure = PurePosixPath(normalized)
    if pure.is_absolute() or ".." in pure.parts:
        return False
    first = pure.parts[0]
    # Drive-qualified names such as "C:/Windows"
    if len(first) >= 2 and first[1] == ":":
        return False
    return True


class ZipArchiveReader:
    """Enumerates the members of an open ZIP file in container order."""

    def __init__(self, zf: zipfile.ZipFile):
        self._zf = zf

    def entries(self) -> Iterator[ArchiveEntry]:
        for info in self._zf.infolist():
            yield ArchiveEntry(
                name=info.filename,
                is_directory=info.filename.endswith("/"),
                open=lambda info=info: self._zf.open(info, "r"),
            )


class ZipArchiveSource:
    """Opens ZIP update packages from disk."""

    @contextmanager
    def open(self, archive_path) -> Iterator[ZipArchiveReader]:
        """Open ``archive_path`` for reading.

        Raises ArchiveUnreadable if the file is missing, locked or not a
        valid ZIP container.
        """
        try:
            zf = zipfile.ZipFile(str(archive_path), "r")
        except _OPEN_ERRORS as exc:
            raise ArchiveUnreadable(
                f"Unable to open zip file {archive_path}: {exc}", path=archive_path,
            ) from exc
        with zf:
            yield ZipArchiveReader(zf)
