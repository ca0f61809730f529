from __future__ import annotations

import json
import logging
import zipfile
from datetime import timedelta
from pathlib import Path

import pytest
from git import Repo

import gitbackup.backup_service as backup_service
import gitbackup.zip_gateway as zip_gateway
from gitbackup.errors import ExportFailedError, MetadataWriteError, PackageFailedError
from gitbackup.models import BackupState, BackupStatus, ErrorKind

from test_helpers import BASE_TIME, commit_file, repo_dir


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def orchestrator(event_log, staging_root: Path) -> backup_service.BackupOrchestrator:
    return backup_service.BackupOrchestrator(
        backup_service.BackupConfig(event_log=event_log, staging_root_abs=staging_root)
    )


@pytest.fixture
def export_calls(monkeypatch: pytest.MonkeyPatch) -> list[Path]:
    calls: list[Path] = []
    real_export_mirror = backup_service.export_mirror

    def _counting_export_mirror(**kwargs) -> None:
        calls.append(kwargs["source_dir_abs"])
        real_export_mirror(**kwargs)

    monkeypatch.setattr(backup_service, "export_mirror", _counting_export_mirror)
    return calls


def _last_commit(sidecar: Path) -> str:
    return json.loads(sidecar.read_text(encoding="utf-8"))["lastCommit"]


def test_backup_is_idempotent_for_unchanged_repository(
    tmp_path: Path, make_repo, orchestrator, export_calls
) -> None:
    source = make_repo("project", commits=2)
    dest_dir = tmp_path / "backups"

    first = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)
    first_mtime = first.target.zip_path.stat().st_mtime_ns
    second = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    assert first.status is BackupStatus.BACKED_UP
    assert second.status is BackupStatus.UP_TO_DATE
    assert second.final_state is BackupState.DONE
    assert len(export_calls) == 1
    assert second.target.zip_path.stat().st_mtime_ns == first_mtime
    assert _last_commit(first.target.metadata_path) == source.head.commit.hexsha


def test_backup_after_new_commit_records_new_tip(
    tmp_path: Path, make_repo, orchestrator, export_calls
) -> None:
    source = make_repo("project", commits=1)
    dest_dir = tmp_path / "backups"
    orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    new_tip = commit_file(source, when=BASE_TIME + timedelta(days=7), content="more\n")
    result = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    assert result.status is BackupStatus.BACKED_UP
    assert result.fingerprint == new_tip.hexsha
    assert _last_commit(result.target.metadata_path) == new_tip.hexsha
    assert len(export_calls) == 2
    assert not result.target.backup_path.exists()


def test_backup_archive_contains_complete_bare_mirror(
    tmp_path: Path, make_repo, orchestrator
) -> None:
    source = make_repo("project", commits=2)
    source.create_head("feature")
    dest_dir = tmp_path / "backups"

    result = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    restored_dir = tmp_path / "restored"
    with zipfile.ZipFile(result.target.zip_path, mode="r") as zf:
        zf.extractall(restored_dir)
    with Repo(restored_dir) as restored:
        assert restored.bare
        assert "refs/heads/feature" in {ref.path for ref in restored.references}
        assert restored.commit("feature").hexsha == source.head.commit.hexsha


def test_backup_skips_directory_without_git_marker(
    tmp_path: Path, orchestrator, export_calls
) -> None:
    plain_dir = tmp_path / "plain"
    plain_dir.mkdir()
    dest_dir = tmp_path / "backups"

    result = orchestrator.backup(source_dir_abs=plain_dir, dest_dir_abs=dest_dir)

    assert result.status is BackupStatus.NOT_A_REPOSITORY
    assert result.succeeded
    assert export_calls == []
    assert not dest_dir.exists()


def test_backup_reexports_when_only_sidecar_was_deleted(
    tmp_path: Path, make_repo, orchestrator, export_calls
) -> None:
    source = make_repo("project", commits=1)
    dest_dir = tmp_path / "backups"
    first = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    first.target.metadata_path.unlink()
    second = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    assert second.status is BackupStatus.BACKED_UP
    assert len(export_calls) == 2
    assert _last_commit(second.target.metadata_path) == source.head.commit.hexsha


def test_backup_reports_unreadable_source(tmp_path: Path, orchestrator) -> None:
    broken = tmp_path / "broken"
    (broken / ".git").mkdir(parents=True)

    result = orchestrator.backup(source_dir_abs=broken, dest_dir_abs=tmp_path / "backups")

    assert result.status is BackupStatus.ABORTED
    assert result.error_kind is ErrorKind.SOURCE_UNREADABLE
    assert not result.succeeded


def test_backup_export_failure_cleans_staging_directory(
    tmp_path: Path,
    make_repo,
    orchestrator,
    staging_root: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    source = make_repo("project", commits=1)
    staged: list[Path] = []

    def _failing_export_mirror(*, staging_dir_abs: Path, **_: object) -> None:
        staged.append(staging_dir_abs)
        (staging_dir_abs / "partial").write_text("x", encoding="utf-8")
        raise ExportFailedError("clone exploded")

    monkeypatch.setattr(backup_service, "export_mirror", _failing_export_mirror)

    result = orchestrator.backup(
        source_dir_abs=repo_dir(source), dest_dir_abs=tmp_path / "backups"
    )

    assert result.error_kind is ErrorKind.EXPORT_FAILED
    assert result.final_state is BackupState.ABORTED
    assert staged and not staged[0].exists()
    assert list(staging_root.iterdir()) == []


def test_backup_package_failure_preserves_prior_archive_and_recovers(
    tmp_path: Path,
    make_repo,
    orchestrator,
    staging_root: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    source = make_repo("project", commits=1)
    dest_dir = tmp_path / "backups"
    first = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)
    first_tip = first.fingerprint
    commit_file(source, when=BASE_TIME + timedelta(days=3), content="changed\n")

    def _fail_write(**_: object) -> None:
        raise PackageFailedError("disk full")

    monkeypatch.setattr(zip_gateway, "write_directory_zip", _fail_write)
    failed = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    assert failed.error_kind is ErrorKind.PACKAGE_FAILED
    assert failed.target.backup_path.is_file()
    assert not failed.target.zip_path.exists()
    assert _last_commit(failed.target.metadata_path) == first_tip
    assert list(staging_root.iterdir()) == []

    monkeypatch.undo()
    recovered = orchestrator.backup(source_dir_abs=repo_dir(source), dest_dir_abs=dest_dir)

    assert recovered.status is BackupStatus.BACKED_UP
    assert not recovered.target.backup_path.exists()
    assert _last_commit(recovered.target.metadata_path) == source.head.commit.hexsha


def test_backup_metadata_write_failure_keeps_archive(
    tmp_path: Path,
    make_repo,
    orchestrator,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    source = make_repo("project", commits=1)

    def _failing_write_fingerprint(**_: object) -> None:
        raise MetadataWriteError("read-only destination")

    monkeypatch.setattr(backup_service, "write_fingerprint", _failing_write_fingerprint)

    result = orchestrator.backup(
        source_dir_abs=repo_dir(source), dest_dir_abs=tmp_path / "backups"
    )

    assert result.error_kind is ErrorKind.METADATA_WRITE_FAILED
    assert result.target.zip_path.is_file()
    assert not result.target.metadata_path.exists()


def test_backup_cleanup_failure_is_logged_not_fatal(
    tmp_path: Path,
    make_repo,
    orchestrator,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    source = make_repo("project", commits=1)

    def _failing_remove(directory_abs: Path, **_: object) -> None:
        raise PermissionError(f"locked: {directory_abs}")

    monkeypatch.setattr(backup_service, "remove_directory_tree", _failing_remove)

    with caplog.at_level(logging.WARNING):
        result = orchestrator.backup(
            source_dir_abs=repo_dir(source), dest_dir_abs=tmp_path / "backups"
        )

    assert result.status is BackupStatus.BACKED_UP
    assert "delete_staging_failed" in caplog.text


def test_backup_of_empty_repository_removes_stale_sidecar(
    tmp_path: Path, make_repo, orchestrator, export_calls
) -> None:
    populated = make_repo("a/repo", commits=2)
    empty = make_repo("b/repo", commits=0)
    dest_dir = tmp_path / "backups"

    orchestrator.backup(source_dir_abs=repo_dir(populated), dest_dir_abs=dest_dir)
    empty_result = orchestrator.backup(
        source_dir_abs=repo_dir(empty), dest_dir_abs=dest_dir
    )

    assert empty_result.status is BackupStatus.BACKED_UP
    assert empty_result.fingerprint is None
    assert empty_result.target.zip_path.is_file()
    assert not empty_result.target.metadata_path.exists()

    again = orchestrator.backup(source_dir_abs=repo_dir(populated), dest_dir_abs=dest_dir)

    assert again.status is BackupStatus.BACKED_UP
    assert len(export_calls) == 3
    assert _last_commit(again.target.metadata_path) == populated.head.commit.hexsha


def test_backup_uses_explicit_archive_name(
    tmp_path: Path, make_repo, orchestrator
) -> None:
    source = make_repo("project", commits=1)

    result = orchestrator.backup(
        source_dir_abs=repo_dir(source),
        dest_dir_abs=tmp_path / "backups",
        archive_name="Renamed",
    )

    assert result.target.zip_path == tmp_path / "backups" / "Renamed.zip"
    assert result.target.zip_path.is_file()
