"""Batch backup of the repositories named in a list file."""

from __future__ import annotations

from pathlib import Path

from .backup_service import BackupOrchestrator
from .errors import ListFileError
from .logging import EventLog
from .models import BatchCandidate, BatchCollision, BatchResult, SkippedLine


def read_list_file(list_file_abs: Path) -> list[str]:
    try:
        return list_file_abs.read_text(encoding="utf-8-sig").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise ListFileError(f"Failed to read list file: {list_file_abs}") from exc


def resolve_candidates(
    lines: list[str], *, event_log: EventLog
) -> tuple[list[BatchCandidate], list[SkippedLine], list[BatchCollision]]:
    """Turn raw list-file lines into the set of repositories safe to back up.

    Archive names come from directory base names, so two repositories whose
    names differ only by case would overwrite each other's archive. Such
    groups are dropped entirely instead of picking a winner.
    """
    skipped: list[SkippedLine] = []
    seen_paths: set[Path] = set()
    groups: dict[str, list[BatchCandidate]] = {}

    for line_number, raw_line in enumerate(lines, start=1):
        # Paths are taken verbatim; a name may start or end with whitespace.
        path_text = raw_line
        if path_text.strip() == "":
            event_log.warning(
                "list_line_blank",
                f"Skip empty line {line_number}",
                line_number=line_number,
            )
            skipped.append(SkippedLine(line_number, raw_line, "blank line"))
            continue

        path = Path(path_text).expanduser()
        if not path.exists():
            event_log.warning(
                "directory_missing",
                f"Cannot find directory {path_text}",
                source=path_text,
            )
            skipped.append(SkippedLine(line_number, raw_line, "directory not found"))
            continue
        if not path.is_dir():
            event_log.warning(
                "not_a_directory",
                f"Not a directory {path_text}",
                source=path_text,
            )
            skipped.append(SkippedLine(line_number, raw_line, "not a directory"))
            continue

        path_abs = path.resolve()
        if path_abs in seen_paths:
            continue
        seen_paths.add(path_abs)

        if path_abs.name == "":
            event_log.warning(
                "directory_unnamed",
                f"Cannot derive an archive name from {path_abs}",
                source=path_abs,
            )
            skipped.append(SkippedLine(line_number, raw_line, "no directory name"))
            continue

        candidate = BatchCandidate(path_abs=path_abs, name=path_abs.name)
        groups.setdefault(candidate.key, []).append(candidate)

    candidates: list[BatchCandidate] = []
    collisions: list[BatchCollision] = []
    for key, members in groups.items():
        if len(members) == 1:
            candidates.append(members[0])
            continue

        event_log.warning(
            "directory_name_collision",
            f"Multiple directories share the name {key}",
            name=key,
        )
        for member in members:
            event_log.warning(
                "directory_name_collision_skip",
                f"- Skip backup directory {member.path_abs}",
                source=member.path_abs,
            )
        collisions.append(
            BatchCollision(name=key, paths=[member.path_abs for member in members])
        )

    # dict preserves first-seen order, so survivors keep list-file order
    return candidates, skipped, collisions


class BatchResolver:
    def __init__(self, *, orchestrator: BackupOrchestrator, event_log: EventLog) -> None:
        self._orchestrator = orchestrator
        self._event_log = event_log

    def run(self, *, list_file_abs: Path, dest_dir_abs: Path) -> BatchResult:
        lines = read_list_file(list_file_abs)
        candidates, skipped, collisions = resolve_candidates(
            lines, event_log=self._event_log
        )

        batch_result = BatchResult(skipped_lines=skipped, collisions=collisions)
        for candidate in candidates:
            batch_result.results.append(
                self._orchestrator.backup(
                    source_dir_abs=candidate.path_abs,
                    dest_dir_abs=dest_dir_abs,
                    archive_name=candidate.name,
                )
            )

        self._event_log.info(
            "batch_completed",
            (
                f"Batch finished: {batch_result.backed_up_count} backed up, "
                f"{batch_result.failed_count} failed, "
                f"{len(batch_result.collisions)} name collision(s)"
            ),
            destination=dest_dir_abs,
        )
        return batch_result
