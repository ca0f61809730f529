"""Discovery of Git repositories below a directory tree."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .constants import GIT_MARKER_NAME
from .errors import ListFileError, StartupValidationError
from .logging import EventLog


def find_repositories(
    *,
    root_dir_abs: Path,
    exclude_patterns: Iterable[str],
    event_log: EventLog,
) -> list[Path]:
    """Return repository roots below ``root_dir_abs`` in walk order.

    A repository is a directory holding a ``.git`` directory. Each exclude
    pattern is a case-insensitive substring matched against the marker's
    full path.
    """
    if not root_dir_abs.exists():
        raise StartupValidationError(f"Search directory does not exist: {root_dir_abs}")
    if not root_dir_abs.is_dir():
        raise StartupValidationError(f"Search path must be a directory: {root_dir_abs}")

    patterns_folded = [pattern.casefold() for pattern in exclude_patterns if pattern]
    repository_dirs: list[Path] = []

    def walk_dir(current_dir_abs: Path) -> None:
        try:
            children = sorted(current_dir_abs.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            event_log.warning(
                "directory_unreadable",
                f"Cannot read directory {current_dir_abs}: {exc}",
                source=current_dir_abs,
            )
            return

        for child_abs in children:
            if child_abs.is_symlink() or not child_abs.is_dir():
                continue
            if child_abs.name == GIT_MARKER_NAME:
                _consider_marker(child_abs)
                continue
            walk_dir(child_abs)

    def _consider_marker(marker_abs: Path) -> None:
        marker_folded = str(marker_abs).casefold()
        for pattern in patterns_folded:
            if pattern in marker_folded:
                event_log.debug(
                    "repository_excluded",
                    f"Exclude repository {marker_abs}",
                    source=marker_abs,
                    pattern=pattern,
                )
                return

        event_log.info(
            "repository_found",
            f"Found repository in {marker_abs}",
            source=marker_abs,
        )
        repository_dirs.append(marker_abs.parent)

    walk_dir(root_dir_abs)
    return repository_dirs


def write_list_file(*, repository_dirs: Iterable[Path], output_file_abs: Path) -> None:
    text = "".join(f"{path}\n" for path in repository_dirs)
    try:
        output_file_abs.parent.mkdir(parents=True, exist_ok=True)
        output_file_abs.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ListFileError(f"Failed to write list file: {output_file_abs}") from exc
