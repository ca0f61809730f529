"""Bare, ref-complete mirror export of a repository."""

from __future__ import annotations

from pathlib import Path

from git import Repo
from git.exc import GitError

from .constants import MIRROR_FETCH_REFSPEC, ORIGIN_REMOTE_NAME
from .errors import ExportFailedError
from .logging import EventLog


def export_mirror(
    *, source_dir_abs: Path, staging_dir_abs: Path, event_log: EventLog
) -> None:
    """Clone ``source_dir_abs`` into ``staging_dir_abs`` as a bare mirror.

    A plain bare clone only copies branches and tags. The origin fetch spec is
    widened to the whole ref namespace and fetched again, so notes, stashes and
    any custom ref namespaces end up in the export too.
    """
    event_log.info(
        "clone_repository",
        f"Clone repository {source_dir_abs}",
        source=source_dir_abs,
    )
    event_log.debug(
        "clone_staging",
        f"Temporary repository is {staging_dir_abs}",
        staging=staging_dir_abs,
    )

    try:
        with Repo.clone_from(
            str(source_dir_abs),
            str(staging_dir_abs),
            bare=True,
            no_checkout=True,
        ) as export_repo:
            _widen_origin_fetch_refspec(export_repo, event_log)
    except (GitError, OSError, ValueError) as exc:
        raise ExportFailedError(f"Failed to clone repository: {source_dir_abs}") from exc


def _widen_origin_fetch_refspec(export_repo: Repo, event_log: EventLog) -> None:
    if ORIGIN_REMOTE_NAME not in {remote.name for remote in export_repo.remotes}:
        return

    event_log.debug(
        "update_fetch_refspec",
        f"Update remote {ORIGIN_REMOTE_NAME} fetch refspec to {MIRROR_FETCH_REFSPEC}",
    )
    origin = export_repo.remote(ORIGIN_REMOTE_NAME)
    with origin.config_writer as writer:
        writer.set_value("fetch", MIRROR_FETCH_REFSPEC)

    export_repo.git.fetch(ORIGIN_REMOTE_NAME)
