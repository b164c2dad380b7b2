"""File-system operations used while applying updates.

Kept behind one small class so tests can inject failures at the exact
step they want (a refused move, a failed write) without touching the OS.
"""

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 65536


class LocalFileSystem:
    """Thin wrapper over ``os``/``pathlib`` with update-specific semantics."""

    def exists(self, path) -> bool:
        return os.path.exists(path)

    def is_dir(self, path) -> bool:
        return os.path.isdir(path)

    def make_dir(self, path, parents: bool = False):
        """Create ``path``; an existing directory is not an error."""
        Path(path).mkdir(parents=parents, exist_ok=True)

    def move(self, src, dst):
        """Rename ``src`` to ``dst`` without ever replacing ``dst``.

        Raises FileExistsError if ``dst`` is already present.
        """
        if os.path.lexists(dst):
            raise FileExistsError(f"Destination already exists: {dst}")
        os.rename(src, dst)

    def relocate(self, src, dst):
        """Like ``move`` but falls back to copy+delete across devices."""
        if os.path.lexists(dst):
            raise FileExistsError(f"Destination already exists: {dst}")
        shutil.move(str(src), str(dst))

    def write_stream(self, path, stream):
        """Create or truncate ``path`` and copy ``stream`` into it."""
        with open(path, "wb") as f:
            shutil.copyfileobj(stream, f, COPY_CHUNK_SIZE)
