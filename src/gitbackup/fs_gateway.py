"""Filesystem traversal, staging and removal helpers."""

from __future__ import annotations

from collections.abc import Callable
import os
import shutil
import stat
import tempfile
from pathlib import Path

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from .constants import (
    REMOVE_TREE_ATTEMPTS,
    REMOVE_TREE_BACKOFF_INITIAL_SEC,
    REMOVE_TREE_BACKOFF_MAX_SEC,
    STAGING_DIR_PREFIX,
)
from .errors import PackageFailedError
from .logging import EventLog
from .models import TreeInventory


def create_staging_directory(staging_root_abs: Path | None = None) -> Path:
    """Create an empty, uniquely named directory for one export."""
    return Path(
        tempfile.mkdtemp(
            prefix=STAGING_DIR_PREFIX,
            dir=str(staging_root_abs) if staging_root_abs is not None else None,
        )
    )


def collect_tree_inventory(root_dir_abs: Path) -> TreeInventory:
    files_rel: list[Path] = []
    empty_directories_rel: list[Path] = []
    skipped_symlinks_rel: list[Path] = []

    def walk_dir(current_dir_abs: Path, current_rel: Path | None) -> bool:
        has_entries = False
        try:
            children = sorted(current_dir_abs.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise PackageFailedError(f"Failed to read directory: {current_dir_abs}") from exc

        for child_abs in children:
            child_rel = (
                Path(child_abs.name)
                if current_rel is None
                else current_rel / child_abs.name
            )
            if child_abs.is_symlink():
                skipped_symlinks_rel.append(child_rel)
                continue

            if child_abs.is_file():
                files_rel.append(child_rel)
                has_entries = True
                continue

            if child_abs.is_dir():
                if not walk_dir(child_abs, child_rel):
                    empty_directories_rel.append(child_rel)
                has_entries = True

        return has_entries

    walk_dir(root_dir_abs, current_rel=None)

    files_rel.sort(key=lambda p: p.as_posix())
    empty_directories_rel.sort(key=lambda p: p.as_posix())
    skipped_symlinks_rel.sort(key=lambda p: p.as_posix())

    return TreeInventory(
        files_rel=files_rel,
        empty_directories_rel=empty_directories_rel,
        skipped_symlinks_rel=skipped_symlinks_rel,
    )


def _force_remove_readonly(
    func: Callable[..., object],
    path: str,
    _exc_info: object,
) -> None:
    """onerror handler for shutil.rmtree: clear read-only bit and retry on Windows."""
    if os.name == "nt":
        os.chmod(path, stat.S_IWRITE)
        func(path)
    else:
        raise


def _remove_tree_once(directory_abs: Path) -> None:
    if not directory_abs.exists():
        return
    shutil.rmtree(directory_abs, onerror=_force_remove_readonly)


def remove_directory_tree(directory_abs: Path, *, event_log: EventLog) -> None:
    """Remove ``directory_abs``, retrying transient failures such as file locks.

    Raises the last OSError once the attempts are exhausted.
    """
    retrying = Retrying(
        retry=retry_if_exception_type(OSError),
        wait=wait_exponential_jitter(
            initial=REMOVE_TREE_BACKOFF_INITIAL_SEC,
            max=REMOVE_TREE_BACKOFF_MAX_SEC,
        ),
        stop=stop_after_attempt(REMOVE_TREE_ATTEMPTS),
        before_sleep=event_log.before_sleep(operation="remove_directory_tree"),
        reraise=True,
    )
    retrying(_remove_tree_once, directory_abs)
