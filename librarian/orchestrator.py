"""Command orchestration: load config and state, mutate, persist."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from . import get_version
from .bazel import BuildRuleSource, DirectoryBuildRuleSource, derive_api_config
from .config import (
    DEFAULT_CONTAINER_TAG,
    DISCOVERY_REPO,
    GENERATOR_IMAGE_TEMPLATE,
    GOOGLEAPIS_REPO,
    ContainerConfig,
    GenerateConfig,
    RepositoryConfig,
    SourceRepo,
    config_path,
    default_config,
    get_value,
    load_config,
    save_config,
    set_value,
)
from .errors import (
    AlreadyInitialized,
    ArtifactNotFound,
    InvalidConfigValue,
    LibrarianError,
    NoPendingRelease,
    NotConfiguredForGeneration,
    NotConfiguredForRelease,
    UnknownConfigKey,
)
from .formatter import AdvisoryResult, Formatter
from .git.commands import SourceControl
from .git.remote import RemoteRepository
from .logging import get_logger
from .models import APIConfig, Artifact, FileConfig, GenerateState, ReleaseState
from .release.machine import TagResult, prepare_release, tag_release
from .stores import ArtifactStore
from .sync import apply_generation_mirrors, sync_artifact

GeneratorHook = Callable[[str, Artifact, RepositoryConfig], None]

ENV_GOOGLEAPIS_DIR = "LIBRARIAN_GOOGLEAPIS_DIR"

UPDATABLE_KEYS = ("librarian.version", "generate.googleapis.ref", "generate.discovery.ref")


@dataclass
class BatchReport:
    """Per-artifact outcome of a command run over one or all artifacts."""

    succeeded: List[str] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)
    advisories: List[AdvisoryResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        return (
            f"{len(self.succeeded)} succeeded, {len(self.skipped)} skipped, "
            f"{len(self.failed)} failed"
        )


@dataclass
class ConfigChange:
    """A config value rewritten by ``config update``."""

    key: str
    old: str
    new: str


@dataclass
class EditOutcome:
    """Result of ``edit``: the artifact after changes and whether anything changed."""

    path: str
    artifact: Artifact
    updated: bool


class Librarian:
    """Coordinates librarian commands against one repository root."""

    def __init__(
        self,
        root: Path | str = ".",
        *,
        store: ArtifactStore | None = None,
        source_control: SourceControl | None = None,
        remote: RemoteRepository | None = None,
        formatter: Formatter | None = None,
        build_rules: BuildRuleSource | None = None,
        generator: GeneratorHook | None = None,
        version: str | None = None,
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.store = store or ArtifactStore(self.root)
        self.source_control = source_control or SourceControl(self.root)
        self._remote = remote
        self.formatter = formatter or Formatter()
        self._build_rules = build_rules
        self._generator = generator
        self.version = version or get_version()
        self.logger = get_logger("orchestrator")

    @property
    def remote(self) -> RemoteRepository:
        if self._remote is None:
            self._remote = RemoteRepository()
        return self._remote

    # ------------------------------------------------------------------
    # Repository config

    def run_init(self, language: str | None) -> Path:
        """Create .librarian/config.yaml for a new repository."""
        path = config_path(self.root)
        if path.exists():
            raise AlreadyInitialized(f"{path} already exists")
        config = default_config(language or "", self.version)
        self._save_config(config)
        self.logger.info("Initialized %s repository at %s", config.language, self.root)
        return path

    def config_get(self, key: str) -> str:
        return get_value(load_config(self.root), key)

    def config_set(self, key: str, value: str) -> RepositoryConfig:
        config = load_config(self.root)
        try:
            set_value(config, key, value)
        except UnknownConfigKey:
            raise
        except LibrarianError as exc:
            raise exc.with_subject(key)
        self._save_config(config)
        return config

    def config_update(self, key: str | None = None, *, all_keys: bool = False) -> List[ConfigChange]:
        """Refresh the toolchain version and source refs to their latest values."""
        if key is None and not all_keys:
            raise InvalidConfigValue("a key or --all is required")
        if key is not None and key != "all" and key not in UPDATABLE_KEYS:
            raise UnknownConfigKey(key)
        keys = UPDATABLE_KEYS if all_keys or key == "all" else (key,)

        config = load_config(self.root)
        changes: List[ConfigChange] = []
        for name in keys:
            latest = self._latest_value(config, name)
            if latest is None:
                continue
            current = get_value(config, name)
            if latest != current:
                set_value(config, name, latest)
                changes.append(ConfigChange(name, current, latest))
                self.logger.info("Updated %s to %s", name, latest)
            else:
                self.logger.info("%s is up to date", name)

        if changes:
            self._save_config(config)
        return changes

    def ensure_generation_config(self, config: RepositoryConfig) -> bool:
        """Fill missing generation defaults and pin unset source refs; saves on change."""
        if config.is_release_only:
            raise NotConfiguredForGeneration("repository is not configured for generation")
        updated = False
        if config.generate is None:
            config.generate = GenerateConfig()
            updated = True
        generate = config.generate
        if generate.container is None or not generate.container.image:
            generate.container = ContainerConfig(
                image=GENERATOR_IMAGE_TEMPLATE.format(language=config.language),
                tag=DEFAULT_CONTAINER_TAG,
            )
            updated = True
        for name, repo in (("googleapis", GOOGLEAPIS_REPO), ("discovery", DISCOVERY_REPO)):
            source = getattr(generate, name)
            if source is None:
                source = SourceRepo(repo=repo)
                setattr(generate, name, source)
                updated = True
            if not source.ref:
                source.ref = self.remote.latest_commit(source.repo)
                updated = True
        if updated:
            self._save_config(config)
            self.logger.info("Initialized generation configuration")
        return updated

    # ------------------------------------------------------------------
    # Artifact management

    def run_add(self, path: str, api_paths: Sequence[str] = ()) -> Tuple[str, Artifact]:
        """Start tracking ``path``, deriving API parameters for any ``api_paths``."""
        config = load_config(self.root)
        key = self.store.key(path)
        artifact = self.store.load(key)

        if config.release is not None and config.release.tag_format and artifact.release is None:
            artifact.release = ReleaseState()

        if api_paths:
            if config.is_release_only:
                raise NotConfiguredForGeneration(
                    "repository is release-only; API paths cannot be generated"
                ).with_subject(key)
            self.ensure_generation_config(config)
            source = self._resolve_build_rules(config)
            generate = artifact.generate or GenerateState()
            tracked = set(generate.api_paths())
            for api_path in api_paths:
                if api_path in tracked:
                    self.logger.info("%s already tracks %s", key, api_path)
                    continue
                try:
                    api = derive_api_config(source, api_path, config.language)
                except LibrarianError as exc:
                    raise exc.with_subject(key)
                if api is None:
                    api = APIConfig(path=api_path)
                generate.apis.append(api)
                tracked.add(api_path)
                self.logger.info(
                    "Parsed %s: transport=%s, grpc_service_config=%s",
                    api_path,
                    api.transport or "-",
                    api.grpc_service_config or "-",
                )
            apply_generation_mirrors(config, generate)
            artifact.generate = generate

        self._persist(key, artifact)
        return key, artifact

    def run_edit(
        self,
        path: str,
        *,
        keep: Iterable[str] = (),
        remove: Iterable[str] = (),
        exclude: Iterable[str] = (),
        language: Iterable[str] = (),
    ) -> EditOutcome:
        """Replace file patterns and set language metadata; no flags reports current state."""
        config = load_config(self.root)
        key = self._require(path)
        artifact = self.store.load(key)

        keep, remove, exclude = set(keep), set(remove), set(exclude)
        assignments = [parse_language_flag(flag) for flag in language]
        updated = bool(keep or remove or exclude or assignments)
        if not updated:
            return EditOutcome(key, artifact, updated=False)

        file_config = artifact.config or FileConfig()
        if keep:
            file_config.keep = keep
        if remove:
            file_config.remove = remove
        if exclude:
            file_config.exclude = exclude
        artifact.config = None if file_config.is_empty() else file_config

        for lang, field_name, value in assignments:
            if not config.is_release_only and lang != config.language:
                raise InvalidConfigValue(
                    f"repository language is {config.language}; cannot set {lang} metadata"
                ).with_subject(key)
            try:
                artifact.ensure_metadata(lang).set(field_name, value)
            except LibrarianError as exc:
                raise exc.with_subject(key)

        self._persist(key, artifact)
        return EditOutcome(key, artifact, updated=True)

    def run_remove(self, path: str) -> bool:
        """Stop tracking ``path``. Removing an untracked path is not an error."""
        removed = self.store.remove(path)
        if not removed:
            self.logger.info("%s was not tracked", self.store.key(path))
        return removed

    # ------------------------------------------------------------------
    # Generation and release

    def run_generate(self, path: str | None = None, *, all_artifacts: bool = False) -> BatchReport:
        """Sync generation mirrors from the repository config and persist them."""
        config = load_config(self.root)
        if config.is_release_only:
            raise NotConfiguredForGeneration("repository is not configured for generation")
        self.ensure_generation_config(config)

        def generate(key: str, artifact: Artifact, report: BatchReport) -> Optional[Artifact]:
            if artifact.generate is None:
                if not all_artifacts:
                    raise NotConfiguredForGeneration("artifact is not configured for generation")
                report.skipped[key] = "not configured for generation"
                return None
            self.logger.info("Regenerating %s", key)
            synced = sync_artifact(config, artifact)
            if self._generator is not None:
                self._generator(key, synced, config)
            return synced

        return self._run(path, all_artifacts, generate)

    def run_prepare(
        self,
        path: str | None = None,
        *,
        all_artifacts: bool = False,
        prerelease: str | None = None,
        promote: bool = False,
    ) -> BatchReport:
        """Compute the next version for one or all artifacts and record it as pending."""
        config = load_config(self.root)
        branch = self.source_control.current_branch()
        commit = self.source_control.current_commit()

        def prepare(key: str, artifact: Artifact, report: BatchReport) -> Optional[Artifact]:
            if artifact.release is None:
                if not all_artifacts:
                    raise NotConfiguredForRelease("artifact is not configured for release")
                report.skipped[key] = "not configured for release"
                return None
            prepared = prepare_release(
                artifact,
                config=config,
                branch=branch,
                commit=commit,
                prerelease=prerelease,
                promote=promote,
            )
            pending = prepared.release.prepared if prepared.release else None
            self.logger.info("Prepared %s at %s", key, pending.version if pending else "?")
            return prepared

        return self._run(path, all_artifacts, prepare)

    def run_release(self, path: str | None = None, *, all_artifacts: bool = False) -> BatchReport:
        """Tag every prepared release and move it into history."""

        def release(key: str, artifact: Artifact, report: BatchReport) -> Optional[Artifact]:
            pending = artifact.release.prepared if artifact.release else None
            if all_artifacts and pending is None:
                report.skipped[key] = "no pending release"
                return None
            if artifact.release is None:
                raise NotConfiguredForRelease("artifact is not configured for release")
            if pending is None:
                raise NoPendingRelease("no release prepared")
            outcome = tag_release(artifact, self.source_control.create_tag)
            if outcome.result is TagResult.ALREADY_RELEASED:
                report.skipped[key] = f"already released at {outcome.tag}"
                return None
            self.logger.info("Tagged %s %s", key, outcome.tag)
            return outcome.artifact

        return self._run(path, all_artifacts, release)

    # ------------------------------------------------------------------
    # Helpers

    def _run(
        self,
        path: str | None,
        all_artifacts: bool,
        step: Callable[[str, Artifact, BatchReport], Optional[Artifact]],
    ) -> BatchReport:
        report = BatchReport()
        if not all_artifacts:
            if not path:
                raise InvalidConfigValue("a path or --all is required")
            key = self._require(path)
            try:
                updated = step(key, self.store.load(key), report)
                if updated is not None:
                    report.advisories.append(self._persist(key, updated))
                    report.succeeded.append(key)
            except LibrarianError as exc:
                raise exc.with_subject(key)
            return report

        artifacts = self.store.load_all()
        self.logger.info("Processing %d artifacts", len(artifacts))
        for key in sorted(artifacts):
            try:
                updated = step(key, artifacts[key], report)
                if updated is None:
                    continue
                report.advisories.append(self._persist(key, updated))
            except (LibrarianError, OSError) as exc:
                self.logger.error("%s: %s", key, exc)
                report.failed[key] = str(exc)
                continue
            report.succeeded.append(key)
        return report

    def _require(self, path: str) -> str:
        key = self.store.key(path)
        if not self.store.exists(key):
            raise ArtifactNotFound(f"no {self.store.state_path(key).name} found").with_subject(key)
        return key

    def _persist(self, key: str, artifact: Artifact) -> AdvisoryResult:
        state_path = self.store.save(key, artifact)
        return self.formatter.format(state_path)

    def _save_config(self, config: RepositoryConfig) -> AdvisoryResult:
        return self.formatter.format(save_config(self.root, config))

    def _latest_value(self, config: RepositoryConfig, key: str) -> Optional[str]:
        if key == "librarian.version":
            return self.version
        if config.is_release_only or config.generate is None:
            return None
        source = getattr(config.generate, key.split(".")[1])
        if source is None or not source.repo:
            return None
        return self.remote.latest_commit(source.repo)

    def _resolve_build_rules(self, config: RepositoryConfig) -> BuildRuleSource:
        if self._build_rules is not None:
            return self._build_rules
        local = os.environ.get(ENV_GOOGLEAPIS_DIR, "").strip()
        if local:
            return DirectoryBuildRuleSource(Path(local))
        googleapis = config.generate.googleapis if config.generate else None
        if googleapis is None:
            raise NotConfiguredForGeneration("generate.googleapis is not configured")
        destination = Path(tempfile.gettempdir()) / "librarian-googleapis" / "googleapis"
        checkout = self.source_control.checkout_source(googleapis.repo, googleapis.ref, destination)
        return DirectoryBuildRuleSource(checkout)


def parse_language_flag(value: str) -> Tuple[str, str, str]:
    """Split ``LANG:KEY=VALUE`` into its three parts."""
    lang, sep, rest = value.partition(":")
    key, eq, item = rest.partition("=")
    if not sep or not eq or not lang or not key:
        raise InvalidConfigValue(f"expected format LANG:KEY=VALUE, got {value!r}")
    return lang.strip().lower(), key.strip(), item


__all__ = [
    "BatchReport",
    "ConfigChange",
    "EditOutcome",
    "Librarian",
    "parse_language_flag",
]
