"""Best-effort formatting of persisted YAML documents."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from .logging import get_logger


@dataclass(frozen=True)
class AdvisoryResult:
    """Outcome of a step whose failure never fails the owning command."""

    ok: bool
    message: str = ""


class Formatter:
    """Runs yamlfmt over a document and reports, but never raises, failures."""

    ENV_EXECUTABLE_KEY = "LIBRARIAN_YAMLFMT"
    DEFAULT_EXECUTABLE = "yamlfmt"

    def __init__(
        self,
        executable: str | None = None,
        runner: Callable[[Iterable[str]], None] | None = None,
    ) -> None:
        self.executable = (
            executable or os.environ.get(self.ENV_EXECUTABLE_KEY) or self.DEFAULT_EXECUTABLE
        )
        self._runner = runner or self._default_runner
        self.logger = get_logger("formatter")

    def format(self, path: Path) -> AdvisoryResult:
        try:
            self._runner([self.executable, str(path)])
        except Exception as exc:  # noqa: BLE001 - advisory step
            message = f"failed to run {self.executable} on {path}: {exc}"
            self.logger.warning(message)
            return AdvisoryResult(ok=False, message=message)
        return AdvisoryResult(ok=True)

    @staticmethod
    def _default_runner(args: Iterable[str]) -> None:
        subprocess.run(list(args), check=True, capture_output=True, text=True)


__all__ = ["AdvisoryResult", "Formatter"]
