"""Propagates repository-level generation settings into artifact state."""

from __future__ import annotations

import copy
from typing import Dict

from .config import RepositoryConfig
from .models import Artifact, GenerateState, SourceState


def sync_artifact(config: RepositoryConfig, artifact: Artifact) -> Artifact:
    """Return a copy of ``artifact`` whose generate mirrors match ``config``.

    Only the toolchain version, container image and source refs are rewritten.
    Per-API parameters under ``generate.apis`` are left as they are. Artifacts
    without a generate section are returned unchanged.
    """
    synced = copy.deepcopy(artifact)
    if synced.generate is None:
        return synced
    apply_generation_mirrors(config, synced.generate)
    return synced


def apply_generation_mirrors(config: RepositoryConfig, state: GenerateState) -> None:
    state.librarian = config.version
    container = config.generate.container if config.generate is not None else None
    state.container_image = container.image if container is not None else ""
    state.container_tag = container.tag if container is not None else ""
    state.sources = _source_mirrors(config)


def _source_mirrors(config: RepositoryConfig) -> Dict[str, SourceState]:
    if config.generate is None:
        return {}
    mirrors: Dict[str, SourceState] = {}
    for name, source in config.generate.sources().items():
        if source is None:
            continue
        mirrors[name] = SourceState(repo=source.repo, ref=source.ref)
    return mirrors


__all__ = ["apply_generation_mirrors", "sync_artifact"]
