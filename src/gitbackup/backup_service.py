"""Backup workflow orchestration for a single repository."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .constants import GIT_MARKER_NAME
from .errors import BackupError, ExportFailedError
from .fingerprint import resolve_fingerprint
from .fs_gateway import create_staging_directory, remove_directory_tree
from .logging import EventLog
from .metadata_gateway import clear_fingerprint, read_last_fingerprint, write_fingerprint
from .mirror_gateway import export_mirror
from .models import ArchiveTarget, BackupResult, BackupState, BackupStatus
from .zip_gateway import package_archive


@dataclass(frozen=True)
class BackupConfig:
    event_log: EventLog
    staging_root_abs: Path | None = None


class BackupOrchestrator:
    """Decide, export, package, record and clean up, one repository at a time.

    Per-repository failures never escape ``backup``; they come back as an
    aborted ``BackupResult`` tagged with the error kind.
    """

    def __init__(self, config: BackupConfig) -> None:
        self._config = config
        self._event_log = config.event_log

    def backup(
        self,
        *,
        source_dir_abs: Path,
        dest_dir_abs: Path,
        archive_name: str | None = None,
    ) -> BackupResult:
        target = ArchiveTarget(
            dest_dir_abs=dest_dir_abs,
            archive_name=archive_name if archive_name is not None else source_dir_abs.name,
        )
        self._event_log.info(
            "backup_started",
            f"Backup {source_dir_abs}",
            source=source_dir_abs,
            archive=target.zip_path,
        )

        if not (source_dir_abs / GIT_MARKER_NAME).is_dir():
            self._event_log.warning(
                "repository_missing",
                f"Cannot find Git repository in directory {source_dir_abs}",
                source=source_dir_abs,
            )
            return BackupResult(
                source_dir_abs=source_dir_abs,
                target=target,
                status=BackupStatus.NOT_A_REPOSITORY,
                final_state=BackupState.DONE,
            )

        state = BackupState.FINGERPRINT_SOURCE
        fingerprint: str | None = None
        staging_dir_abs: Path | None = None
        try:
            fingerprint = resolve_fingerprint(source_dir_abs)

            state = BackupState.FINGERPRINT_CHECK
            archived_fingerprint = read_last_fingerprint(
                target=target, event_log=self._event_log
            )
            if fingerprint is not None and fingerprint == archived_fingerprint:
                self._event_log.info(
                    "backup_not_required",
                    "Backup not required",
                    source=source_dir_abs,
                    fingerprint=fingerprint,
                )
                return BackupResult(
                    source_dir_abs=source_dir_abs,
                    target=target,
                    status=BackupStatus.UP_TO_DATE,
                    final_state=BackupState.DONE,
                    fingerprint=fingerprint,
                )

            state = BackupState.EXPORTING
            staging_dir_abs = self._create_staging_directory()
            export_mirror(
                source_dir_abs=source_dir_abs,
                staging_dir_abs=staging_dir_abs,
                event_log=self._event_log,
            )

            state = BackupState.PACKAGING
            package_archive(
                staging_dir_abs=staging_dir_abs,
                target=target,
                event_log=self._event_log,
            )

            # A repository without commits leaves no sidecar, so the next run re-exports.
            state = BackupState.RECORDING_METADATA
            if fingerprint is not None:
                write_fingerprint(
                    target=target,
                    fingerprint=fingerprint,
                    event_log=self._event_log,
                )
            else:
                clear_fingerprint(target=target, event_log=self._event_log)
        except BackupError as exc:
            self._event_log.error(
                "backup_aborted",
                f"Backup of {source_dir_abs} aborted while {state.value}: {exc}",
                exc_info=exc,
                source=source_dir_abs,
                error_kind=exc.kind,
            )
            return BackupResult(
                source_dir_abs=source_dir_abs,
                target=target,
                status=BackupStatus.ABORTED,
                final_state=BackupState.ABORTED,
                fingerprint=fingerprint,
                error_kind=exc.kind,
                error_message=str(exc),
            )
        finally:
            if staging_dir_abs is not None:
                self._clean_up(staging_dir_abs)

        self._event_log.info(
            "backup_completed",
            f"Backed up {source_dir_abs} to {target.zip_path}",
            source=source_dir_abs,
            archive=target.zip_path,
            fingerprint=fingerprint,
        )
        return BackupResult(
            source_dir_abs=source_dir_abs,
            target=target,
            status=BackupStatus.BACKED_UP,
            final_state=BackupState.DONE,
            fingerprint=fingerprint,
        )

    def _create_staging_directory(self) -> Path:
        try:
            return create_staging_directory(self._config.staging_root_abs)
        except OSError as exc:
            raise ExportFailedError("Failed to create temporary export directory") from exc

    def _clean_up(self, staging_dir_abs: Path) -> None:
        self._event_log.debug(
            "delete_staging",
            f"Delete temporary repository {staging_dir_abs}",
            staging=staging_dir_abs,
        )
        try:
            remove_directory_tree(staging_dir_abs, event_log=self._event_log)
        except OSError as exc:
            self._event_log.warning(
                "delete_staging_failed",
                f"Unable to delete temp directory {staging_dir_abs}: {exc}",
                staging=staging_dir_abs,
            )
