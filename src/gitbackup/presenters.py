"""User-facing text rendering."""

from __future__ import annotations

from .constants import ERROR_PREFIX, WARNING_PREFIX
from .models import BackupStatus, BatchResult

_STATUS_LABELS = {
    BackupStatus.BACKED_UP: "backed up",
    BackupStatus.UP_TO_DATE: "up to date",
    BackupStatus.NOT_A_REPOSITORY: "not a repository",
    BackupStatus.ABORTED: "failed",
}


def render_error(message: str) -> str:
    return f"{ERROR_PREFIX} {message}"


def render_warning(message: str) -> str:
    return f"{WARNING_PREFIX} {message}"


def render_batch_summary(batch_result: BatchResult) -> list[str]:
    lines = ["Batch summary:"]
    for result in batch_result.results:
        label = _STATUS_LABELS[result.status]
        if result.error_kind is not None:
            label = f"{label} ({result.error_kind.value})"
        lines.append(f"{result.source_dir_abs}: {label}")
    for collision in batch_result.collisions:
        joined = ", ".join(str(path) for path in collision.paths)
        lines.append(render_warning(f"Name collision '{collision.name}': {joined}"))
    lines.append(
        f"{batch_result.backed_up_count} backed up, "
        f"{batch_result.failed_count} failed, "
        f"{len(batch_result.skipped_lines)} line(s) skipped."
    )
    return lines
