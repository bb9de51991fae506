"""Semantic-version transitions driven by a prerelease label.

Versions look like ``v1.2.0`` or ``v1.2.0-rc.3``. The leading ``v`` is optional on
input and always present on output. ``UNRELEASED`` marks an artifact that has never
been tagged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..errors import InvalidVersionFormat

UNRELEASED = "unreleased"

_VERSION_PATTERN = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)(?:-([a-z]+)\.(\d+))?$")
_LABEL_PATTERN = re.compile(r"^[a-z]+$")
_PRERELEASE_SEPARATOR = "-"


@dataclass(frozen=True)
class ParsedVersion:
    """Numeric components of a version string."""

    major: int
    minor: int
    patch: int
    label: str = ""
    counter: int = 0

    def render(self) -> str:
        base = f"v{self.major}.{self.minor}.{self.patch}"
        if self.label:
            return f"{base}-{self.label}.{self.counter}"
        return base


def is_unreleased(version: Optional[str]) -> bool:
    return version is None or version == UNRELEASED


def parse_version(version: str) -> ParsedVersion:
    """Parse ``version`` or raise :class:`InvalidVersionFormat`."""
    match = _VERSION_PATTERN.match(version)
    if match is None:
        raise InvalidVersionFormat(f"invalid version format: {version!r}")
    major, minor, patch, label, counter = match.groups()
    return ParsedVersion(
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        label=label or "",
        counter=int(counter) if counter else 0,
    )


def increment_version(previous: str, prerelease: str = "") -> str:
    """Return the version that follows ``previous`` for the given prerelease label.

    - unreleased: ``v0.1.0`` or ``v0.1.0-<label>.1``
    - same label as previous: bump the prerelease counter only
    - new or different label: bump minor, reset patch, counter starts at 1
    - empty label on a prerelease: promote by dropping the suffix
    - empty label on a stable version: bump minor, reset patch
    """
    if prerelease and not _LABEL_PATTERN.match(prerelease):
        raise InvalidVersionFormat(
            f"invalid prerelease label {prerelease!r}: expected lowercase letters only"
        )

    if is_unreleased(previous):
        if prerelease:
            return f"v0.1.0-{prerelease}.1"
        return "v0.1.0"

    current = parse_version(previous)

    if prerelease:
        if current.label == prerelease:
            return ParsedVersion(
                current.major, current.minor, current.patch, prerelease, current.counter + 1
            ).render()
        # TODO: a label switch on an unshipped line (rc -> beta) still bumps minor;
        # decide whether it should keep major.minor.patch and restart the counter.
        return ParsedVersion(current.major, current.minor + 1, 0, prerelease, 1).render()

    if current.label:
        return ParsedVersion(current.major, current.minor, current.patch).render()

    return ParsedVersion(current.major, current.minor + 1, 0).render()


def remove_prerelease(version: str) -> str:
    """Drop everything from the first ``-`` onward."""
    head, _, _ = version.partition(_PRERELEASE_SEPARATOR)
    return head


def has_prerelease(version: str) -> bool:
    return _PRERELEASE_SEPARATOR in version


__all__ = [
    "ParsedVersion",
    "UNRELEASED",
    "has_prerelease",
    "increment_version",
    "is_unreleased",
    "parse_version",
    "remove_prerelease",
]
