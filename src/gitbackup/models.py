"""Dataclasses and models shared across gitbackup layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .constants import ARCHIVE_SUFFIX, BACKUP_SUFFIX, METADATA_SUFFIX


class BackupState(StrEnum):
    IDLE = "idle"
    FINGERPRINT_SOURCE = "fingerprint_source"
    FINGERPRINT_CHECK = "fingerprint_check"
    EXPORTING = "exporting"
    PACKAGING = "packaging"
    RECORDING_METADATA = "recording_metadata"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    ABORTED = "aborted"


class BackupStatus(StrEnum):
    BACKED_UP = "backed_up"
    UP_TO_DATE = "up_to_date"
    NOT_A_REPOSITORY = "not_a_repository"
    ABORTED = "aborted"


class ErrorKind(StrEnum):
    SOURCE_UNREADABLE = "source_unreadable"
    EXPORT_FAILED = "export_failed"
    PACKAGE_FAILED = "package_failed"
    METADATA_WRITE_FAILED = "metadata_write_failed"


class ArchiveInfo(BaseModel):
    """Sidecar record written next to each archive."""

    model_config = ConfigDict(populate_by_name=True)

    last_commit: str = Field(alias="lastCommit")


@dataclass(frozen=True)
class ArchiveTarget:
    dest_dir_abs: Path
    archive_name: str

    @property
    def zip_path(self) -> Path:
        return self.dest_dir_abs / f"{self.archive_name}{ARCHIVE_SUFFIX}"

    @property
    def metadata_path(self) -> Path:
        # Sidecar name is derived from the full archive file name: repo.zip.json
        return self.zip_path.with_name(f"{self.zip_path.name}{METADATA_SUFFIX}")

    @property
    def backup_path(self) -> Path:
        return self.zip_path.with_name(f"{self.zip_path.name}{BACKUP_SUFFIX}")


@dataclass(frozen=True)
class TreeInventory:
    files_rel: list[Path]
    empty_directories_rel: list[Path]
    skipped_symlinks_rel: list[Path]

    @property
    def file_count(self) -> int:
        return len(self.files_rel)


@dataclass(frozen=True)
class BackupResult:
    source_dir_abs: Path
    target: ArchiveTarget
    status: BackupStatus
    final_state: BackupState
    fingerprint: str | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is not BackupStatus.ABORTED


@dataclass(frozen=True)
class BatchCandidate:
    path_abs: Path
    name: str

    @property
    def key(self) -> str:
        return self.name.casefold()


@dataclass(frozen=True)
class SkippedLine:
    line_number: int
    raw_line: str
    reason: str


@dataclass(frozen=True)
class BatchCollision:
    name: str
    paths: list[Path]


@dataclass
class BatchResult:
    results: list[BackupResult] = field(default_factory=list)
    skipped_lines: list[SkippedLine] = field(default_factory=list)
    collisions: list[BatchCollision] = field(default_factory=list)

    @property
    def backed_up_count(self) -> int:
        return sum(1 for result in self.results if result.status is BackupStatus.BACKED_UP)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if not result.succeeded)
