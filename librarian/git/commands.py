"""Source-control commands used by the release flow."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable

from ..errors import ExternalCommandFailed
from ..logging import get_logger


class SourceControl:
    """Thin wrapper around the git CLI for a single working tree."""

    def __init__(self, root: Path, runner: Callable[..., str] | None = None) -> None:
        self.root = Path(root)
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def current_branch(self) -> str:
        return self._run(["git", "branch", "--show-current"], cwd=self.root).strip()

    def current_commit(self) -> str:
        return self._run(["git", "rev-parse", "HEAD"], cwd=self.root).strip()

    def create_tag(self, tag: str, commit: str) -> None:
        args = ["git", "tag", tag]
        if commit:
            args.append(commit)
        self.logger.debug("Creating tag %s at %s", tag, commit or "HEAD")
        self._run(args, cwd=self.root)

    def checkout_source(self, repo: str, ref: str, destination: Path) -> Path:
        """Clone ``repo`` at ``ref`` into ``destination``, reusing a matching checkout."""
        if destination.exists():
            try:
                head = self._run(["git", "rev-parse", "HEAD"], cwd=destination).strip()
            except ExternalCommandFailed:
                head = ""
            if head and head == ref:
                self.logger.info("Using cached %s at %s", repo, ref)
                return destination
            shutil.rmtree(destination)

        destination.parent.mkdir(parents=True, exist_ok=True)
        url = f"https://{repo}.git"
        self.logger.info("Cloning %s at %s...", repo, ref)
        try:
            self._run(
                ["git", "clone", "--depth=1", "--branch", ref, url, str(destination)],
                cwd=destination.parent,
            )
        except ExternalCommandFailed:
            # --branch only accepts branch and tag names; fall back for commit SHAs.
            if destination.exists():
                shutil.rmtree(destination)
            self._run(["git", "clone", url, str(destination)], cwd=destination.parent)
            self._run(["git", "checkout", ref], cwd=destination)
        return destination

    # ------------------------------------------------------------------
    # Helpers

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        return self._runner(list(args), cwd=cwd)

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        command = list(args)
        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd),
                check=True,
                text=True,
                capture_output=True,
            )
        except FileNotFoundError as exc:
            raise ExternalCommandFailed(command, f"{command[0]} is not installed") from exc
        except subprocess.CalledProcessError as exc:
            raise ExternalCommandFailed(command, exc.stderr or f"exit code {exc.returncode}") from exc
        return completed.stdout


__all__ = ["SourceControl"]
