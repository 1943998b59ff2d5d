from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.fake_git import FakeGit
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def fake_git(repo_builder: RepoBuilder) -> FakeGit:
    """Scripted git runner bound to the repo builder's checkout."""
    return FakeGit(repo_builder.path())
