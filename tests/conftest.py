from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.fakes import FakeCommandRunner
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def command_runner() -> FakeCommandRunner:
    """Command runner that succeeds for every command unless told otherwise."""
    return FakeCommandRunner()


@pytest.fixture(autouse=True)
def _isolate_ci_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("GITHUB_SHA", "GITHUB_BASE_SHA", "GITHUB_REPOSITORY"):
        monkeypatch.delenv(name, raising=False)
