"""Exception types raised by the updater.

Critical errors (``ConfigError``, ``LayoutError``) stop the process before
the main loop starts. Everything else is a warning: the current archive or
entry is abandoned and the loop carries on.
"""


class UpdaterError(Exception):
    """Base class for all updater errors."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class ConfigError(UpdaterError):
    """Configuration file missing, unreadable or invalid."""


class LayoutError(UpdaterError):
    """A mandatory working directory could not be created."""


class ProcessQueryFailed(UpdaterError):
    """The OS process list could not be read."""


class ApplyError(UpdaterError):
    """Failure while applying one update archive."""


class ArchiveUnreadable(ApplyError):
    """The archive file could not be opened or is not a valid container."""


class BackupDirUnavailable(ApplyError):
    """The batch backup folder could not be created."""


class BackupMoveFailed(ApplyError):
    """A pre-existing target file could not be moved into the backup folder."""


class ContentWriteFailed(ApplyError):
    """New content could not be written to the target file."""


class EntryUnreadable(ApplyError):
    """A member of the archive could not be read."""
