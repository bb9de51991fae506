from __future__ import annotations

from pathlib import Path

import pytest

from librarian.formatter import Formatter
from librarian.git.commands import SourceControl
from librarian.orchestrator import Librarian
from tests._fixtures.doubles import FakeGit, FakeRemote, RecordingRunner
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "LIBRARIAN_GITHUB_TOKEN",
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "LIBRARIAN_GOOGLEAPIS_DIR",
        "LIBRARIAN_YAMLFMT",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def format_runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def librarian(
    repo_builder: RepoBuilder,
    fake_git: FakeGit,
    fake_remote: FakeRemote,
    format_runner: RecordingRunner,
) -> Librarian:
    """A Librarian wired to recording doubles instead of git, GitHub and yamlfmt."""
    return Librarian(
        repo_builder.path(),
        source_control=SourceControl(repo_builder.path(), runner=fake_git),
        remote=fake_remote,  # type: ignore[arg-type]
        formatter=Formatter(runner=format_runner),
        version="v1.2.3",
    )
