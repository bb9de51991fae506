"""Error taxonomy shared by every librarian command."""

from __future__ import annotations

from typing import Optional, Sequence


class LibrarianError(RuntimeError):
    """Base class for failures reported to the user.

    ``subject`` names what failed (artifact path, config key) and prefixes the
    rendered message when set.
    """

    subject: Optional[str] = None

    def with_subject(self, subject: str) -> "LibrarianError":
        if self.subject is None:
            self.subject = subject
        return self

    def __str__(self) -> str:
        message = super().__str__()
        return f"{self.subject}: {message}" if self.subject else message


class ConfigNotFound(LibrarianError):
    """Raised when the repository has not been initialized."""


class ConfigParseError(LibrarianError):
    """Raised when .librarian/config.yaml cannot be parsed."""


class UnknownConfigKey(LibrarianError):
    """Raised for a key path outside the config schema."""

    def __init__(self, key: str) -> None:
        super().__init__(f"unknown config key: {key}")
        self.key = key


class InvalidConfigValue(LibrarianError):
    """Raised when a config or metadata value is rejected."""


class AlreadyInitialized(LibrarianError):
    """Raised when init would overwrite an existing repository config."""


class InvalidVersionFormat(LibrarianError):
    """Raised when a version string is not vMAJOR.MINOR.PATCH[-LABEL.N]."""


class NotConfiguredForRelease(LibrarianError):
    """Raised when an artifact has no release section."""


class NotConfiguredForGeneration(LibrarianError):
    """Raised when generation is requested for a release-only artifact or repository."""


class NoPendingRelease(LibrarianError):
    """Raised when tagging an artifact that has not been prepared."""


class DuplicateReleaseTag(LibrarianError):
    """Raised when a prepared tag already appears in the release history."""


class ArtifactNotFound(LibrarianError):
    """Raised when an explicit artifact path has no state document."""


class StateParseError(LibrarianError):
    """Raised when an artifact state document cannot be parsed."""


class ScanError(LibrarianError):
    """Raised when the repository tree cannot be walked."""


class BuildRuleParseError(LibrarianError):
    """Raised when a BUILD.bazel file is not parseable."""


class ExternalCommandFailed(LibrarianError):
    """Wraps a failing git, network, or formatter call."""

    def __init__(self, command: Sequence[str] | str, detail: str = "") -> None:
        self.command = command if isinstance(command, str) else " ".join(command)
        self.detail = detail.strip()
        message = f"`{self.command}` failed"
        if self.detail:
            message = f"{message}: {self.detail}"
        super().__init__(message)


__all__ = [
    "AlreadyInitialized",
    "ArtifactNotFound",
    "BuildRuleParseError",
    "ConfigNotFound",
    "ConfigParseError",
    "DuplicateReleaseTag",
    "ExternalCommandFailed",
    "InvalidConfigValue",
    "InvalidVersionFormat",
    "LibrarianError",
    "NoPendingRelease",
    "NotConfiguredForGeneration",
    "NotConfiguredForRelease",
    "ScanError",
    "StateParseError",
    "UnknownConfigKey",
]
