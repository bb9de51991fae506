"""Persistence for repository config and artifact state documents."""

from .artifact_store import STATE_FILE, ArtifactStore

__all__ = ["ArtifactStore", "STATE_FILE"]
