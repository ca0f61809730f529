"""Pytest fixtures for gitbackup tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import timedelta
from pathlib import Path

import pytest
from git import Repo

from gitbackup.logging import EventLog
from test_helpers import BASE_TIME, commit_file


@pytest.fixture
def event_log() -> EventLog:
    # Outside the "gitbackup" logger hierarchy so records reach caplog.
    return EventLog(logging.getLogger("tests.gitbackup"))


@pytest.fixture
def make_repo(tmp_path: Path) -> Iterator[Callable[..., Repo]]:
    """Build a non-bare repository under tmp_path with N daily commits."""
    created: list[Repo] = []

    def _make_repo(relative_path: str, *, commits: int = 1) -> Repo:
        path = tmp_path / relative_path
        path.mkdir(parents=True)
        repo = Repo.init(path)
        created.append(repo)
        for index in range(commits):
            commit_file(repo, when=BASE_TIME + timedelta(days=index))
        return repo

    yield _make_repo

    for repo in created:
        repo.close()
