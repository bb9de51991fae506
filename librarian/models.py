"""Core data models for per-artifact state documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional, Set, Tuple, Type

from .errors import InvalidConfigValue
from .release.version import UNRELEASED


@dataclass
class APIConfig:
    """Generator parameters for one API path, in generation order."""

    path: str
    service_config: str = ""
    grpc_service_config: str = ""
    transport: str = ""
    rest_numeric_enums: bool = False
    opt_args: List[str] = field(default_factory=list)


@dataclass
class SourceState:
    """Source repository and ref an artifact was last generated from."""

    repo: str = ""
    ref: str = ""


@dataclass
class GenerateState:
    """How an artifact is generated, mirrored from the repository config at sync time."""

    apis: List[APIConfig] = field(default_factory=list)
    librarian: str = ""
    container_image: str = ""
    container_tag: str = ""
    sources: Dict[str, SourceState] = field(default_factory=dict)

    def api_paths(self) -> List[str]:
        return [api.path for api in self.apis]


@dataclass
class ReleaseInfo:
    """A prepared or completed release."""

    tag: str
    commit: str = ""
    version: str = ""
    branch: str = ""


@dataclass
class ReleaseState:
    """Release bookkeeping: last tagged version, pending release and history."""

    version: str = UNRELEASED
    prepared: Optional[ReleaseInfo] = None
    history: List[ReleaseInfo] = field(default_factory=list)

    def released_tags(self) -> Set[str]:
        return {entry.tag for entry in self.history}


@dataclass
class FileConfig:
    """File patterns consulted during regeneration and release."""

    keep: Set[str] = field(default_factory=set)
    remove: Set[str] = field(default_factory=set)
    exclude: Set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        return not (self.keep or self.remove or self.exclude)


@dataclass
class LanguageMetadata:
    """Language-specific metadata; one subclass per target language."""

    language: ClassVar[str] = ""
    fields: ClassVar[Tuple[str, ...]] = ()

    def set(self, key: str, value: str) -> None:
        if key not in self.fields:
            expected = ", ".join(repr(name) for name in self.fields)
            raise InvalidConfigValue(
                f"unknown {self.language} property: {key} (expected {expected})"
            )
        setattr(self, key, value)

    def items(self) -> List[Tuple[str, str]]:
        return [(name, getattr(self, name)) for name in self.fields if getattr(self, name)]


@dataclass
class GoMetadata(LanguageMetadata):
    language: ClassVar[str] = "go"
    fields: ClassVar[Tuple[str, ...]] = ("module",)

    module: str = ""


@dataclass
class PythonMetadata(LanguageMetadata):
    language: ClassVar[str] = "python"
    fields: ClassVar[Tuple[str, ...]] = ("package",)

    package: str = ""


@dataclass
class RustMetadata(LanguageMetadata):
    language: ClassVar[str] = "rust"
    fields: ClassVar[Tuple[str, ...]] = ("crate",)

    crate: str = ""


@dataclass
class DartMetadata(LanguageMetadata):
    language: ClassVar[str] = "dart"
    fields: ClassVar[Tuple[str, ...]] = ("package",)

    package: str = ""


LANGUAGE_METADATA: Dict[str, Type[LanguageMetadata]] = {
    cls.language: cls for cls in (GoMetadata, PythonMetadata, RustMetadata, DartMetadata)
}


def metadata_for(language: str) -> LanguageMetadata:
    """Return an empty metadata block for ``language``."""
    cls = LANGUAGE_METADATA.get(language)
    if cls is None:
        choices = ", ".join(LANGUAGE_METADATA)
        raise InvalidConfigValue(f"unknown language: {language} (expected {choices})")
    return cls()


@dataclass
class Artifact:
    """State of one managed directory (.librarian.yaml)."""

    generate: Optional[GenerateState] = None
    release: Optional[ReleaseState] = None
    config: Optional[FileConfig] = None
    language: Dict[str, LanguageMetadata] = field(default_factory=dict)

    def metadata(self, language: str) -> Optional[LanguageMetadata]:
        """Return the metadata block meaningful for the repository's target language."""
        return self.language.get(language)

    def ensure_metadata(self, language: str) -> LanguageMetadata:
        block = self.language.get(language)
        if block is None:
            block = metadata_for(language)
            self.language[language] = block
        return block


__all__ = [
    "APIConfig",
    "Artifact",
    "DartMetadata",
    "FileConfig",
    "GenerateState",
    "GoMetadata",
    "LANGUAGE_METADATA",
    "LanguageMetadata",
    "PythonMetadata",
    "ReleaseInfo",
    "ReleaseState",
    "RustMetadata",
    "SourceState",
    "metadata_for",
]
