"""Prepare and tag transitions for a single artifact."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, cast

from ..config import RepositoryConfig
from ..errors import (
    DuplicateReleaseTag,
    InvalidVersionFormat,
    NoPendingRelease,
    NotConfiguredForRelease,
)
from ..models import Artifact, ReleaseInfo, ReleaseState
from .branch import resolve_prerelease_label
from .version import increment_version, is_unreleased, parse_version, remove_prerelease

TagCreator = Callable[[str, str], None]


class ReleaseStatus(str, Enum):
    UNRELEASED = "unreleased"
    PENDING = "pending"
    RELEASED = "released"


class TagResult(str, Enum):
    TAGGED = "tagged"
    ALREADY_RELEASED = "already_released"


@dataclass
class TagOutcome:
    """Result of :func:`tag_release`."""

    result: TagResult
    tag: str
    artifact: Artifact


def release_status(artifact: Artifact) -> Optional[ReleaseStatus]:
    """Return the release state, or None for artifacts without a release section."""
    release = artifact.release
    if release is None:
        return None
    if release.prepared is not None:
        return ReleaseStatus.PENDING
    if is_unreleased(release.version) and not release.history:
        return ReleaseStatus.UNRELEASED
    return ReleaseStatus.RELEASED


def prepare_release(
    artifact: Artifact,
    *,
    config: RepositoryConfig,
    branch: str,
    commit: str,
    prerelease: Optional[str] = None,
    promote: bool = False,
) -> Artifact:
    """Return a copy of ``artifact`` with its next release prepared.

    Preparing again before tagging replaces the previous pending entry.
    """
    if artifact.release is None:
        raise NotConfiguredForRelease("artifact is not configured for release")

    current = artifact.release.version
    if promote:
        if is_unreleased(current):
            raise InvalidVersionFormat("cannot promote an artifact that was never released")
        parse_version(current)
        next_version = remove_prerelease(current)
    else:
        label = resolve_prerelease_label(
            config, branch=branch, prerelease=prerelease, promote=promote
        )
        next_version = increment_version(current, label)

    if next_version in artifact.release.released_tags():
        raise DuplicateReleaseTag(f"tag {next_version} was already released")

    prepared = copy.deepcopy(artifact)
    cast(ReleaseState, prepared.release).prepared = ReleaseInfo(
        version=next_version,
        tag=next_version,
        commit=commit,
        branch=branch,
    )
    return prepared


def tag_release(artifact: Artifact, create_tag: TagCreator) -> TagOutcome:
    """Create the pending tag and move it into the release history.

    ``create_tag(tag, commit)`` runs before any state changes, so a failing tag
    leaves the returned artifact untouched.
    """
    release = artifact.release
    if release is None:
        raise NotConfiguredForRelease("artifact is not configured for release")
    pending = release.prepared
    if pending is None:
        raise NoPendingRelease("no release prepared")

    if pending.tag in release.released_tags():
        return TagOutcome(TagResult.ALREADY_RELEASED, pending.tag, artifact)

    create_tag(pending.tag, pending.commit)

    tagged = copy.deepcopy(artifact)
    tagged_release = cast(ReleaseState, tagged.release)
    entry = cast(ReleaseInfo, tagged_release.prepared)
    tagged_release.history.append(entry)
    tagged_release.version = entry.tag
    tagged_release.prepared = None
    return TagOutcome(TagResult.TAGGED, entry.tag, tagged)


__all__ = [
    "ReleaseStatus",
    "TagOutcome",
    "TagResult",
    "prepare_release",
    "release_status",
    "tag_release",
]
