"""Zip packaging with crash-safe replacement of the prior archive."""

from __future__ import annotations

import zipfile
from pathlib import Path

from .constants import ARCHIVE_COMPRESSLEVEL
from .errors import PackageFailedError
from .fs_gateway import collect_tree_inventory
from .logging import EventLog
from .models import ArchiveTarget, TreeInventory


def package_archive(
    *, staging_dir_abs: Path, target: ArchiveTarget, event_log: EventLog
) -> None:
    """Compress ``staging_dir_abs`` into ``target.zip_path``.

    The prior archive is moved aside to ``target.backup_path`` before the new
    one is written and deleted only after the new archive verifies. On failure
    the aside copy stays on disk as the last-known-good archive.
    """
    event_log.info(
        "archive_repository",
        f"Archive repository to {target.zip_path}",
        archive=target.zip_path,
    )

    try:
        target.dest_dir_abs.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise PackageFailedError(
            f"Failed to create destination directory: {target.dest_dir_abs}"
        ) from exc

    _move_prior_archive_aside(target=target, event_log=event_log)

    inventory = collect_tree_inventory(staging_dir_abs)
    try:
        write_directory_zip(
            source_dir_abs=staging_dir_abs,
            zip_path_abs=target.zip_path,
            inventory=inventory,
        )
        verify_archive(target.zip_path)
    except Exception:
        # The torn file goes; the aside copy is the recoverable state.
        target.zip_path.unlink(missing_ok=True)
        raise

    for symlink_rel in inventory.skipped_symlinks_rel:
        event_log.warning(
            "archive_symlink_skipped",
            f"Skipped symlink: {symlink_rel}",
            archive=target.zip_path,
        )

    if target.backup_path.exists():
        try:
            target.backup_path.unlink()
        except OSError as exc:
            raise PackageFailedError(
                f"Failed to remove previous archive: {target.backup_path}"
            ) from exc


def _move_prior_archive_aside(*, target: ArchiveTarget, event_log: EventLog) -> None:
    try:
        if target.backup_path.exists():
            # A previous replacement was interrupted: the aside copy is the last
            # archive known to be complete, whatever sits at the target is not.
            event_log.warning(
                "archive_replacement_resumed",
                f"Keeping {target.backup_path} from an interrupted replacement",
                archive=target.zip_path,
            )
            target.zip_path.unlink(missing_ok=True)
            return

        if target.zip_path.exists():
            target.zip_path.rename(target.backup_path)
    except OSError as exc:
        raise PackageFailedError(
            f"Failed to move previous archive aside: {target.zip_path}"
        ) from exc


def write_directory_zip(
    *,
    source_dir_abs: Path,
    zip_path_abs: Path,
    inventory: TreeInventory,
) -> None:
    try:
        with zipfile.ZipFile(
            zip_path_abs,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=ARCHIVE_COMPRESSLEVEL,
            strict_timestamps=False,
        ) as zf:
            for rel_path in inventory.files_rel:
                file_abs = source_dir_abs / rel_path
                if not file_abs.is_file():
                    raise PackageFailedError(f"File disappeared while archiving: {file_abs}")
                zf.write(file_abs, arcname=rel_path.as_posix())

            for rel_path in inventory.empty_directories_rel:
                zf.writestr(f"{rel_path.as_posix().rstrip('/')}/", data=b"")
    except OSError as exc:
        raise PackageFailedError(f"Failed to write zip archive: {zip_path_abs}") from exc


def verify_archive(zip_path_abs: Path) -> None:
    try:
        with zipfile.ZipFile(zip_path_abs, mode="r") as zf:
            corrupt_member = zf.testzip()
    except zipfile.BadZipFile as exc:
        raise PackageFailedError(f"Invalid zip archive: {zip_path_abs}") from exc
    except OSError as exc:
        raise PackageFailedError(f"Failed to read zip archive: {zip_path_abs}") from exc

    if corrupt_member is not None:
        raise PackageFailedError(
            f"Zip integrity check failed for member: {corrupt_member}"
        )
