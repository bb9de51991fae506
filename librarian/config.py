"""Repository configuration loading for librarian (.librarian/config.yaml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml

from .errors import (
    ConfigNotFound,
    ConfigParseError,
    InvalidConfigValue,
    UnknownConfigKey,
)
from .stores.documents import as_dict, as_str, drop_empty, write_yaml

CONFIG_DIR = ".librarian"
CONFIG_FILE = "config.yaml"

LANGUAGE_NONE = "none"
SUPPORTED_LANGUAGES = ("go", "python", "rust", "dart")

DEFAULT_TAG_FORMAT = "{name}-v{version}"
DEFAULT_OUTPUT_DIR = "packages/"
DEFAULT_CONTAINER_TAG = "latest"
GENERATOR_IMAGE_TEMPLATE = (
    "us-central1-docker.pkg.dev/cloud-sdk-librarian-prod/images-prod/{language}-librarian-generator"
)
GOOGLEAPIS_REPO = "github.com/googleapis/googleapis"
DISCOVERY_REPO = "github.com/googleapis/discovery-artifact-manager"


@dataclass
class ContainerConfig:
    """Generator container image."""

    image: str = ""
    tag: str = ""

    def reference(self) -> str:
        if not self.image:
            return ""
        return f"{self.image}:{self.tag}" if self.tag else self.image


@dataclass
class SourceRepo:
    """External source repository pinned at a ref."""

    repo: str = ""
    ref: str = ""


@dataclass
class GenerateConfig:
    """Generation settings shared by every generated artifact."""

    container: Optional[ContainerConfig] = None
    googleapis: Optional[SourceRepo] = None
    discovery: Optional[SourceRepo] = None
    dir: str = ""

    def sources(self) -> Dict[str, Optional[SourceRepo]]:
        return {"googleapis": self.googleapis, "discovery": self.discovery}


@dataclass
class BranchPattern:
    """Maps a branch glob to the prerelease label used on that branch."""

    pattern: str
    prerelease: str = ""


@dataclass
class ReleaseConfig:
    """Tagging conventions."""

    tag_format: str = ""
    branch_patterns: List[BranchPattern] = field(default_factory=list)


@dataclass
class RepositoryConfig:
    """Represents the settings defined in .librarian/config.yaml."""

    version: str = ""
    language: str = LANGUAGE_NONE
    generate: Optional[GenerateConfig] = None
    release: Optional[ReleaseConfig] = None

    @property
    def is_release_only(self) -> bool:
        return self.language == LANGUAGE_NONE

    def output_dir(self) -> str:
        if self.generate is not None and self.generate.dir:
            return self.generate.dir
        return "generated"


def config_path(root: Path) -> Path:
    return root / CONFIG_DIR / CONFIG_FILE


def normalize_language(value: Optional[str]) -> str:
    """Map user input to a supported language, raising for anything else."""
    language = (value or "").strip().lower()
    if language in ("", LANGUAGE_NONE):
        return LANGUAGE_NONE
    if language not in SUPPORTED_LANGUAGES:
        choices = ", ".join((*SUPPORTED_LANGUAGES, LANGUAGE_NONE))
        raise InvalidConfigValue(f"language must be one of: {choices} (got {value!r})")
    return language


def default_config(language: str, version: str) -> RepositoryConfig:
    """Return the config written by ``librarian init``."""
    language = normalize_language(language)
    config = RepositoryConfig(
        version=version,
        language=language,
        release=ReleaseConfig(tag_format=DEFAULT_TAG_FORMAT),
    )
    if not config.is_release_only:
        config.generate = GenerateConfig(
            container=ContainerConfig(
                image=GENERATOR_IMAGE_TEMPLATE.format(language=language),
                tag=DEFAULT_CONTAINER_TAG,
            ),
            googleapis=SourceRepo(repo=GOOGLEAPIS_REPO),
            discovery=SourceRepo(repo=DISCOVERY_REPO),
            dir=DEFAULT_OUTPUT_DIR,
        )
    return config


def load_config(root: Path) -> RepositoryConfig:
    """Load the repository config rooted at ``root``."""
    path = config_path(root)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigNotFound(
            f"{path} not found; run `librarian init` first"
        ) from exc

    try:
        data = yaml.safe_load(text) if text.strip() else {}
    except yaml.YAMLError as exc:
        raise ConfigParseError(f"failed to parse {path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigParseError(f"{path} must contain a mapping at the root")

    try:
        return config_from_dict(data)
    except InvalidConfigValue as exc:
        raise ConfigParseError(f"{path}: {exc}") from exc


def save_config(root: Path, config: RepositoryConfig) -> Path:
    """Overwrite the repository config, creating .librarian/ when absent."""
    validate_config(config)
    path = config_path(root)
    write_yaml(path, config_to_dict(config))
    return path


def validate_config(config: RepositoryConfig) -> None:
    normalize_language(config.language)
    if config.is_release_only and config.generate is not None:
        raise InvalidConfigValue(
            "release-only repositories (language none) cannot carry a generate section"
        )


def config_from_dict(data: Dict[str, Any]) -> RepositoryConfig:
    librarian_data = as_dict(data.get("librarian"))
    config = RepositoryConfig(
        version=as_str(librarian_data.get("version")),
        language=normalize_language(as_str(librarian_data.get("language"))),
    )

    generate_data = as_dict(data.get("generate"))
    if generate_data:
        container_data = as_dict(generate_data.get("container"))
        config.generate = GenerateConfig(
            container=(
                ContainerConfig(
                    image=as_str(container_data.get("image")),
                    tag=as_str(container_data.get("tag")),
                )
                if container_data
                else None
            ),
            googleapis=_source_from_dict(generate_data.get("googleapis")),
            discovery=_source_from_dict(generate_data.get("discovery")),
            dir=as_str(generate_data.get("dir")),
        )

    release_data = as_dict(data.get("release"))
    if release_data:
        patterns: List[BranchPattern] = []
        raw_patterns = release_data.get("branch_patterns") or []
        if not isinstance(raw_patterns, list):
            raise InvalidConfigValue("release.branch_patterns must be a list")
        for raw in raw_patterns:
            entry = as_dict(raw)
            pattern = as_str(entry.get("pattern"))
            if not pattern:
                raise InvalidConfigValue("release.branch_patterns entries need a pattern")
            patterns.append(
                BranchPattern(pattern=pattern, prerelease=as_str(entry.get("prerelease")))
            )
        config.release = ReleaseConfig(
            tag_format=as_str(release_data.get("tag_format")),
            branch_patterns=patterns,
        )

    validate_config(config)
    return config


def config_to_dict(config: RepositoryConfig) -> Dict[str, Any]:
    librarian_data: Dict[str, Any] = {"version": config.version}
    if not config.is_release_only:
        librarian_data["language"] = config.language

    payload: Dict[str, Any] = {"librarian": librarian_data}
    if config.generate is not None:
        generate = config.generate
        payload["generate"] = {
            "container": (
                {"image": generate.container.image, "tag": generate.container.tag}
                if generate.container is not None
                else None
            ),
            "googleapis": _source_to_dict(generate.googleapis),
            "discovery": _source_to_dict(generate.discovery),
            "dir": generate.dir,
        }
    if config.release is not None:
        payload["release"] = {
            "tag_format": config.release.tag_format,
            "branch_patterns": [
                {"pattern": item.pattern, "prerelease": item.prerelease}
                for item in config.release.branch_patterns
            ],
        }
    return drop_empty(payload, keep=("version",))


def _source_from_dict(value: Any) -> Optional[SourceRepo]:
    data = as_dict(value)
    if not data:
        return None
    return SourceRepo(repo=as_str(data.get("repo")), ref=as_str(data.get("ref")))


def _source_to_dict(source: Optional[SourceRepo]) -> Optional[Dict[str, str]]:
    if source is None:
        return None
    return {"repo": source.repo, "ref": source.ref}


# ----------------------------------------------------------------------
# Key-path access


@dataclass(frozen=True)
class ConfigKey:
    """Typed getter/setter pair for one ``config get/set`` key path."""

    path: str
    getter: Callable[[RepositoryConfig], str]
    setter: Callable[[RepositoryConfig, str], None]
    description: str = ""


def _generate(config: RepositoryConfig) -> GenerateConfig:
    if config.is_release_only:
        raise InvalidConfigValue(
            "repository is release-only; set librarian.language before generate.* keys"
        )
    if config.generate is None:
        config.generate = GenerateConfig()
    return config.generate


def _container(config: RepositoryConfig) -> ContainerConfig:
    generate = _generate(config)
    if generate.container is None:
        generate.container = ContainerConfig()
    return generate.container


def _source(name: str) -> Callable[[RepositoryConfig], SourceRepo]:
    def resolve(config: RepositoryConfig) -> SourceRepo:
        generate = _generate(config)
        source = getattr(generate, name)
        if source is None:
            source = SourceRepo()
            setattr(generate, name, source)
        return source

    return resolve


def _release(config: RepositoryConfig) -> ReleaseConfig:
    if config.release is None:
        config.release = ReleaseConfig()
    return config.release


def _set_language(config: RepositoryConfig, value: str) -> None:
    language = normalize_language(value)
    if language == LANGUAGE_NONE and config.generate is not None:
        raise InvalidConfigValue(
            "cannot make the repository release-only while a generate section exists"
        )
    config.language = language


def _get_language(config: RepositoryConfig) -> str:
    return config.language


def _set_container(config: RepositoryConfig, value: str) -> None:
    image, tag = split_image_reference(value)
    container = _container(config)
    container.image = image
    if tag:
        container.tag = tag


def split_image_reference(value: str) -> Tuple[str, str]:
    """Split ``image[:tag]``; a colon before the last ``/`` belongs to a registry port."""
    head, sep, tag = value.rpartition(":")
    if not sep or "/" in tag:
        return value, ""
    return head, tag


def _get_container(config: RepositoryConfig) -> str:
    generate = config.generate
    if generate is None or generate.container is None:
        return ""
    return generate.container.reference()


def _source_getter(name: str, attribute: str) -> Callable[[RepositoryConfig], str]:
    def getter(config: RepositoryConfig) -> str:
        if config.generate is None:
            return ""
        source = getattr(config.generate, name)
        return getattr(source, attribute) if source is not None else ""

    return getter


def _source_setter(name: str, attribute: str) -> Callable[[RepositoryConfig, str], None]:
    resolve = _source(name)

    def setter(config: RepositoryConfig, value: str) -> None:
        setattr(resolve(config), attribute, value)

    return setter


def _build_key_registry() -> Dict[str, ConfigKey]:
    keys = [
        ConfigKey(
            "librarian.version",
            lambda c: c.version,
            lambda c, v: setattr(c, "version", v),
            "Version of librarian that manages the repository.",
        ),
        ConfigKey(
            "librarian.language",
            _get_language,
            _set_language,
            "Target language (go, python, rust, dart, none).",
        ),
        ConfigKey(
            "release.tag_format",
            lambda c: c.release.tag_format if c.release is not None else "",
            lambda c, v: setattr(_release(c), "tag_format", v),
            "Template for release tags.",
        ),
        ConfigKey(
            "generate.container",
            _get_container,
            _set_container,
            "Generator image as image[:tag].",
        ),
        ConfigKey(
            "generate.container.image",
            lambda c: c.generate.container.image
            if c.generate is not None and c.generate.container is not None
            else "",
            lambda c, v: setattr(_container(c), "image", v),
            "Generator image without tag.",
        ),
        ConfigKey(
            "generate.container.tag",
            lambda c: c.generate.container.tag
            if c.generate is not None and c.generate.container is not None
            else "",
            lambda c, v: setattr(_container(c), "tag", v),
            "Generator image tag.",
        ),
        ConfigKey(
            "generate.dir",
            lambda c: c.generate.dir if c.generate is not None else "",
            lambda c, v: setattr(_generate(c), "dir", v),
            "Directory generated artifacts are created under.",
        ),
    ]
    for source in ("googleapis", "discovery"):
        for attribute in ("repo", "ref"):
            keys.append(
                ConfigKey(
                    f"generate.{source}.{attribute}",
                    _source_getter(source, attribute),
                    _source_setter(source, attribute),
                    f"{source} source {attribute}.",
                )
            )
    return {key.path: key for key in keys}


CONFIG_KEYS: Dict[str, ConfigKey] = _build_key_registry()


def get_value(config: RepositoryConfig, key: str) -> str:
    """Return the value at ``key``; unset optional fields read as ``""``."""
    entry = CONFIG_KEYS.get(key)
    if entry is None:
        raise UnknownConfigKey(key)
    return entry.getter(config)


def set_value(config: RepositoryConfig, key: str, value: str) -> RepositoryConfig:
    """Assign ``value`` at ``key`` in place and return ``config``."""
    entry = CONFIG_KEYS.get(key)
    if entry is None:
        raise UnknownConfigKey(key)
    entry.setter(config, value)
    return config


__all__ = [
    "BranchPattern",
    "CONFIG_KEYS",
    "ConfigKey",
    "ContainerConfig",
    "GenerateConfig",
    "LANGUAGE_NONE",
    "ReleaseConfig",
    "RepositoryConfig",
    "SUPPORTED_LANGUAGES",
    "SourceRepo",
    "config_path",
    "default_config",
    "get_value",
    "load_config",
    "normalize_language",
    "save_config",
    "set_value",
]
