"""Typed exceptions for gitbackup."""

from __future__ import annotations

from .models import ErrorKind


class GitBackupError(Exception):
    """Base exception for gitbackup failures."""


class StartupValidationError(GitBackupError):
    """Raised when command-line arguments are invalid."""


class ListFileError(GitBackupError):
    """Raised when a repository list file cannot be read or written."""


class MetadataError(GitBackupError):
    """Raised when an archive sidecar cannot be read or parsed."""


class BackupError(GitBackupError):
    """Base for failures that abort the backup of a single repository."""

    kind: ErrorKind


class SourceUnreadableError(BackupError):
    """Raised when the source repository cannot be opened or enumerated."""

    kind = ErrorKind.SOURCE_UNREADABLE


class ExportFailedError(BackupError):
    """Raised when the mirror export of a repository fails."""

    kind = ErrorKind.EXPORT_FAILED


class PackageFailedError(BackupError):
    """Raised when the archive cannot be written or swapped into place."""

    kind = ErrorKind.PACKAGE_FAILED


class MetadataWriteError(BackupError):
    """Raised when the sidecar cannot be written after a successful archive."""

    kind = ErrorKind.METADATA_WRITE_FAILED
