"""Archive sidecar (``<archive>.json``) persistence."""

from __future__ import annotations

import json

from pydantic import ValidationError

from .errors import MetadataError, MetadataWriteError
from .logging import EventLog
from .models import ArchiveInfo, ArchiveTarget


def read_last_fingerprint(*, target: ArchiveTarget, event_log: EventLog) -> str | None:
    """Return the fingerprint recorded for ``target``'s archive, or None.

    None means "no trustworthy prior backup": the archive or its sidecar is
    missing, a replacement was interrupted, or the sidecar is unreadable.
    """
    if target.backup_path.exists():
        event_log.warning(
            "archive_replacement_pending",
            f"Interrupted archive replacement found: {target.backup_path}",
            archive=target.zip_path,
        )
        return None

    if not target.zip_path.is_file() or not target.metadata_path.is_file():
        event_log.debug(
            "archive_metadata_missing",
            f"Archive file {target.zip_path} or corresponding json file is missing",
            archive=target.zip_path,
        )
        return None

    event_log.debug(
        "archive_metadata_read",
        f"Checking last commit hash in archive json file {target.metadata_path}",
        archive=target.zip_path,
    )
    try:
        return read_archive_info(target=target).last_commit
    except MetadataError as exc:
        event_log.warning(
            "archive_metadata_invalid",
            f"Unable to read last commit hash from {target.metadata_path}: {exc}",
            archive=target.zip_path,
        )
        return None


def read_archive_info(*, target: ArchiveTarget) -> ArchiveInfo:
    try:
        raw_text = target.metadata_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MetadataError(f"Failed to read metadata: {target.metadata_path}") from exc

    try:
        return ArchiveInfo.model_validate_json(raw_text)
    except ValidationError as exc:
        raise MetadataError(f"Invalid metadata JSON: {target.metadata_path}") from exc


def write_fingerprint(
    *, target: ArchiveTarget, fingerprint: str, event_log: EventLog
) -> None:
    if not target.zip_path.is_file():
        event_log.warning(
            "archive_missing",
            f"Archive file {target.zip_path} is missing; metadata not written",
            archive=target.zip_path,
        )
        return

    payload = ArchiveInfo(last_commit=fingerprint).model_dump(mode="json", by_alias=True)
    try:
        target.metadata_path.write_text(
            f"{json.dumps(payload, ensure_ascii=False, indent=2)}\n",
            encoding="utf-8",
        )
    except OSError as exc:
        raise MetadataWriteError(
            f"Failed to write metadata: {target.metadata_path}"
        ) from exc

    event_log.debug(
        "archive_metadata_written",
        f"Recorded last commit {fingerprint} in {target.metadata_path}",
        archive=target.zip_path,
        fingerprint=fingerprint,
    )


def clear_fingerprint(*, target: ArchiveTarget, event_log: EventLog) -> None:
    """Remove the sidecar so the archive is never paired with another run's commit."""
    if not target.metadata_path.exists():
        return

    try:
        target.metadata_path.unlink()
    except OSError as exc:
        raise MetadataWriteError(
            f"Failed to remove stale metadata: {target.metadata_path}"
        ) from exc

    event_log.debug(
        "archive_metadata_cleared",
        f"Removed last commit record {target.metadata_path}",
        archive=target.zip_path,
    )
