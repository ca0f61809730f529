"""Fingerprint of a repository's most recent history point."""

from __future__ import annotations

from pathlib import Path

from git import Repo
from git.exc import GitError

from .errors import SourceUnreadableError

# One line per commit reachable from any ref: "<sha> <author epoch> <committer epoch>"
_LOG_FORMAT = "--format=%H %at %ct"


def resolve_fingerprint(source_dir_abs: Path) -> str | None:
    """Return the SHA of the most recently touched commit, or None if there is none.

    Every commit reachable from any ref is considered. A commit's age is the later
    of its author and committer timestamps, compared in epoch seconds so timezone
    offsets cannot reorder them. Commits sharing the greatest timestamp are ordered
    by SHA and the greatest SHA wins, which makes the choice independent of the
    order git enumerates history in.
    """
    try:
        with Repo(source_dir_abs) as repo:
            if not repo.references:
                return None
            log_output = repo.git.log("--all", _LOG_FORMAT)
    except (GitError, OSError, ValueError) as exc:
        raise SourceUnreadableError(
            f"Failed to read repository history: {source_dir_abs}"
        ) from exc

    best: tuple[int, str] | None = None
    for line in log_output.splitlines():
        candidate = _parse_log_line(line, source_dir_abs)
        if candidate is not None and (best is None or candidate > best):
            best = candidate

    return best[1] if best is not None else None


def _parse_log_line(line: str, source_dir_abs: Path) -> tuple[int, str] | None:
    parts = line.split()
    if not parts:
        return None
    if len(parts) != 3:
        raise SourceUnreadableError(
            f"Unexpected git log output for {source_dir_abs}: {line!r}"
        )

    sha, author_time, committer_time = parts
    try:
        touched_at = max(int(author_time), int(committer_time))
    except ValueError as exc:
        raise SourceUnreadableError(
            f"Unexpected git log output for {source_dir_abs}: {line!r}"
        ) from exc
    return touched_at, sha
