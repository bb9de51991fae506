"""Per-directory artifact state documents (.librarian.yaml)."""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

import yaml

from ..errors import InvalidConfigValue, ScanError, StateParseError
from ..logging import get_logger
from ..models import (
    APIConfig,
    Artifact,
    FileConfig,
    GenerateState,
    LanguageMetadata,
    ReleaseInfo,
    ReleaseState,
    SourceState,
    metadata_for,
)
from ..release.version import UNRELEASED
from .documents import as_bool, as_dict, as_str, as_str_list, drop_empty, write_yaml

STATE_FILE = ".librarian.yaml"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    ".librarian",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
}

_GENERATE_FIELDS = {"apis", "librarian", "container"}


class ArtifactStore:
    """Loads and saves artifact state documents keyed by their directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.logger = get_logger("stores.artifacts")

    def key(self, path: str | Path) -> str:
        """Normalise ``path`` to the posix key used for the artifact."""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.relative_to(self.root)
            except ValueError:
                pass
        text = candidate.as_posix().strip()
        normalised = PurePosixPath(text).as_posix() if text else "."
        while normalised.startswith("./"):
            normalised = normalised[2:]
        return normalised.rstrip("/") or "."

    def state_path(self, path: str | Path) -> Path:
        return self.root / self.key(path) / STATE_FILE

    def exists(self, path: str | Path) -> bool:
        return self.state_path(path).is_file()

    def load(self, path: str | Path) -> Artifact:
        """Return the artifact at ``path``, or an empty artifact when untracked."""
        state_path = self.state_path(path)
        try:
            text = state_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Artifact()
        except OSError as exc:
            raise StateParseError(f"failed to read {state_path}: {exc}") from exc
        return self._parse(state_path, text)

    def save(self, path: str | Path, artifact: Artifact) -> Path:
        """Overwrite the state document for ``path``."""
        state_path = self.state_path(path)
        write_yaml(state_path, artifact_to_dict(artifact))
        self.logger.debug("Wrote %s", state_path)
        return state_path

    def remove(self, path: str | Path) -> bool:
        """Delete the state document; returns False when there was nothing to delete."""
        state_path = self.state_path(path)
        try:
            state_path.unlink()
        except FileNotFoundError:
            return False
        return True

    def load_all(self) -> Dict[str, Artifact]:
        """Scan the repository for state documents and load each one."""
        artifacts: Dict[str, Artifact] = {}
        for state_path in self._scan():
            key = self.key(state_path.parent)
            try:
                text = state_path.read_text(encoding="utf-8")
            except OSError as exc:
                raise ScanError(f"failed to read {state_path}: {exc}") from exc
            artifacts[key] = self._parse(state_path, text)
        self.logger.debug("Found %d artifacts under %s", len(artifacts), self.root)
        return artifacts

    # ------------------------------------------------------------------
    # Helpers

    def _scan(self) -> List[Path]:
        def _raise(error: OSError) -> None:
            raise ScanError(f"failed to scan {error.filename}: {error.strerror}") from error

        found: List[Path] = []
        for current, dirnames, filenames in os.walk(self.root, onerror=_raise):
            dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
            if STATE_FILE in filenames:
                found.append(Path(current) / STATE_FILE)
        return found

    @staticmethod
    def _parse(state_path: Path, text: str) -> Artifact:
        try:
            data = yaml.safe_load(text) if text.strip() else {}
        except yaml.YAMLError as exc:
            raise StateParseError(f"failed to parse {state_path}: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise StateParseError(f"{state_path} must contain a mapping at the root")
        try:
            return artifact_from_dict(data)
        except InvalidConfigValue as exc:
            raise StateParseError(f"{state_path}: {exc}") from exc


def artifact_from_dict(data: Dict[str, Any]) -> Artifact:
    artifact = Artifact()

    generate_data = data.get("generate")
    if isinstance(generate_data, dict):
        container = as_dict(generate_data.get("container"))
        artifact.generate = GenerateState(
            apis=[_api_from_dict(item) for item in generate_data.get("apis") or []],
            librarian=as_str(generate_data.get("librarian")),
            container_image=as_str(container.get("image")),
            container_tag=as_str(container.get("tag")),
            sources={
                name: SourceState(repo=as_str(value.get("repo")), ref=as_str(value.get("ref")))
                for name, value in generate_data.items()
                if name not in _GENERATE_FIELDS and isinstance(value, dict)
            },
        )

    release_data = data.get("release")
    if isinstance(release_data, dict):
        prepared = release_data.get("prepared")
        artifact.release = ReleaseState(
            version=as_str(release_data.get("version")) or UNRELEASED,
            prepared=_release_info_from_dict(prepared) if isinstance(prepared, dict) else None,
            history=[
                _release_info_from_dict(item)
                for item in release_data.get("history") or []
                if isinstance(item, dict)
            ],
        )

    config_data = as_dict(data.get("config"))
    if config_data:
        file_config = FileConfig(
            keep=set(as_str_list(config_data.get("keep"))),
            remove=set(as_str_list(config_data.get("remove"))),
            exclude=set(as_str_list(config_data.get("exclude"))),
        )
        if not file_config.is_empty():
            artifact.config = file_config

    for language, block in as_dict(data.get("language")).items():
        metadata = metadata_for(str(language))
        for key, value in as_dict(block).items():
            metadata.set(str(key), as_str(value))
        if metadata.items():
            artifact.language[metadata.language] = metadata

    return artifact


def artifact_to_dict(artifact: Artifact) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if artifact.generate is not None:
        generate = artifact.generate
        generate_payload: Dict[str, Any] = {
            "apis": [_api_to_dict(api) for api in generate.apis],
            "librarian": generate.librarian,
            "container": {"image": generate.container_image, "tag": generate.container_tag},
        }
        for name, source in generate.sources.items():
            generate_payload[name] = {"repo": source.repo, "ref": source.ref}
        payload["generate"] = generate_payload
    if artifact.release is not None:
        release = artifact.release
        payload["release"] = {
            "version": release.version,
            "prepared": _release_info_to_dict(release.prepared) if release.prepared else None,
            "history": [_release_info_to_dict(entry) for entry in release.history],
        }
    if artifact.config is not None:
        payload["config"] = {
            "keep": sorted(artifact.config.keep),
            "remove": sorted(artifact.config.remove),
            "exclude": sorted(artifact.config.exclude),
        }
    if artifact.language:
        payload["language"] = {
            name: _metadata_to_dict(block) for name, block in sorted(artifact.language.items())
        }
    return drop_empty(payload)


def _api_from_dict(value: Any) -> APIConfig:
    if isinstance(value, str):
        return APIConfig(path=value)
    data = as_dict(value)
    return APIConfig(
        path=as_str(data.get("path")),
        service_config=as_str(data.get("service_config")),
        grpc_service_config=as_str(data.get("grpc_service_config")),
        transport=as_str(data.get("transport")),
        rest_numeric_enums=as_bool(data.get("rest_numeric_enums")),
        opt_args=as_str_list(data.get("opt_args")),
    )


def _api_to_dict(api: APIConfig) -> Dict[str, Any]:
    return {
        "path": api.path,
        "service_config": api.service_config,
        "grpc_service_config": api.grpc_service_config,
        "transport": api.transport,
        "rest_numeric_enums": api.rest_numeric_enums,
        "opt_args": list(api.opt_args),
    }


def _release_info_from_dict(data: Dict[str, Any]) -> ReleaseInfo:
    return ReleaseInfo(
        tag=as_str(data.get("tag")),
        commit=as_str(data.get("commit")),
        version=as_str(data.get("version")),
        branch=as_str(data.get("branch")),
    )


def _release_info_to_dict(info: ReleaseInfo) -> Dict[str, str]:
    return {
        "version": info.version,
        "tag": info.tag,
        "commit": info.commit,
        "branch": info.branch,
    }


def _metadata_to_dict(block: LanguageMetadata) -> Dict[str, str]:
    return dict(block.items())


__all__ = ["ArtifactStore", "STATE_FILE", "artifact_from_dict", "artifact_to_dict"]
