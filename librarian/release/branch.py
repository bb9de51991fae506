"""Prerelease label selection from flags and branch patterns."""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Optional

from ..config import RepositoryConfig


def detect_prerelease(config: RepositoryConfig, branch: str) -> str:
    """Return the label of the first branch pattern matching ``branch``."""
    if config.release is None:
        return ""
    for rule in config.release.branch_patterns:
        if branch_matches(branch, rule.pattern):
            return rule.prerelease
    return ""


def branch_matches(branch: str, pattern: str) -> bool:
    """Glob match where ``*`` never crosses a ``/`` separator."""
    branch_parts = branch.split("/")
    pattern_parts = pattern.split("/")
    if len(branch_parts) != len(pattern_parts):
        return False
    return all(fnmatchcase(part, glob) for part, glob in zip(branch_parts, pattern_parts))


def resolve_prerelease_label(
    config: RepositoryConfig,
    *,
    branch: str,
    prerelease: Optional[str] = None,
    promote: bool = False,
) -> str:
    """Pick the effective label: promote forces stable, then the flag, then the branch."""
    if promote:
        return ""
    if prerelease is not None:
        return prerelease.strip()
    return detect_prerelease(config, branch)


__all__ = ["branch_matches", "detect_prerelease", "resolve_prerelease_label"]
