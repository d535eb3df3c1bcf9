"""Error taxonomy for sync operations.

Fatal errors (``MetadataUnavailable``, ``MalformedVersion``, ``ConfigError``)
stop a batch before anything is written. Per-script errors
(``ContentFetchFailed``, ``ContentWriteFailed``) are isolated and reported in
the batch result.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every error raised by scriptsync."""


class ConfigError(SyncError):
    """The configuration file is missing, unreadable, or incomplete."""


class MetadataUnavailable(SyncError):
    """A metadata document could not be loaded or decoded."""


class MalformedVersion(SyncError, ValueError):
    """A version string is not a MAJOR.MINOR.PATCH triple of integers."""

    def __init__(self, version: object):
        self.version = version
        super().__init__(f"Malformed version string: {version!r}")


class LocalScriptUnreadable(SyncError):
    """A local script file exists but cannot be read or decoded."""


class ContentFetchFailed(SyncError):
    """A single script could not be read from the remote repository."""


class RemoteFileNotFound(ContentFetchFailed):
    """The requested path does not exist in the remote repository."""


class ContentWriteFailed(SyncError):
    """A single file could not be written to the remote repository."""


class RevisionConflict(ContentWriteFailed):
    """The remote file changed since its revision was last observed.

    The caller should re-read the file and recompute before retrying.
    """

    def __init__(self, path: str, expected_revision: str | None, detail: str = ""):
        self.path = path
        self.expected_revision = expected_revision
        message = f"Revision conflict on {path} (expected revision {expected_revision or 'none'})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
