"""Recording stand-ins for git, GitHub and formatter collaborators."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from librarian.errors import ExternalCommandFailed


class FakeGit:
    """Recording git runner that answers branch and commit queries."""

    def __init__(self, branch: str = "main", commit: str = "abc123") -> None:
        self.branch = branch
        self.commit = commit
        self.calls: List[Tuple[List[str], Path]] = []
        self.fail_on: Optional[Callable[[List[str]], bool]] = None

    def __call__(self, args, *, cwd):  # type: ignore[no-untyped-def]
        command = list(args)
        self.calls.append((command, Path(cwd)))
        if self.fail_on is not None and self.fail_on(command):
            raise ExternalCommandFailed(command, "simulated failure")
        if command[:3] == ["git", "branch", "--show-current"]:
            return f"{self.branch}\n"
        if command[:2] == ["git", "rev-parse"]:
            return f"{self.commit}\n"
        return ""

    def tags(self) -> List[str]:
        return [command[2] for command, _ in self.calls if command[:2] == ["git", "tag"]]


class FakeRemote:
    """Stands in for RemoteRepository with fixed latest commits per repository."""

    def __init__(self, commits: Optional[Mapping[str, str]] = None) -> None:
        self.commits: Dict[str, str] = dict(commits or {})
        self.requests: List[str] = []

    def latest_commit(self, repo: str, branch: str | None = None) -> str:
        self.requests.append(repo)
        return self.commits.get(repo, "f" * 40)


class RecordingRunner:
    """Formatter runner that records invocations and optionally fails."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: List[List[str]] = []
        self.error = error

    def __call__(self, args) -> None:  # type: ignore[no-untyped-def]
        self.calls.append(list(args))
        if self.error is not None:
            raise self.error


__all__ = ["FakeGit", "FakeRemote", "RecordingRunner"]
