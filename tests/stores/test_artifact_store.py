"""Tests for the per-directory artifact state store."""

from __future__ import annotations

from pathlib import Path

import pytest

from librarian.errors import StateParseError
from librarian.models import (
    APIConfig,
    Artifact,
    FileConfig,
    GenerateState,
    GoMetadata,
    ReleaseInfo,
    ReleaseState,
    SourceState,
)
from librarian.stores import STATE_FILE, ArtifactStore
from librarian.stores.artifact_store import artifact_to_dict


def _full_artifact() -> Artifact:
    return Artifact(
        generate=GenerateState(
            apis=[
                APIConfig(
                    path="google/cloud/secretmanager/v1",
                    service_config="secretmanager_v1.yaml",
                    grpc_service_config="secretmanager_grpc_service_config.json",
                    transport="grpc+rest",
                    rest_numeric_enums=True,
                    opt_args=["warehouse-package-name=google-cloud-secret-manager"],
                ),
                APIConfig(path="google/cloud/secretmanager/v1beta2"),
            ],
            librarian="v0.5.0",
            container_image="example/generator",
            container_tag="latest",
            sources={"googleapis": SourceState("github.com/googleapis/googleapis", "abc")},
        ),
        release=ReleaseState(
            version="v1.2.0",
            prepared=ReleaseInfo(tag="v1.3.0", commit="c2", version="v1.3.0", branch="main"),
            history=[ReleaseInfo(tag="v1.2.0", commit="c1", version="v1.2.0", branch="main")],
        ),
        config=FileConfig(keep={"README.md", "CHANGES.md"}, exclude={"internal/*"}),
        language={"go": GoMetadata(module="cloud.google.com/go/secretmanager")},
    )


def test_save_then_load_round_trips(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)
    artifact = _full_artifact()

    path = store.save("secretmanager", artifact)

    assert path == tmp_path / "secretmanager" / STATE_FILE
    assert store.load("secretmanager") == artifact


def test_empty_sections_are_absent_after_round_trip(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)
    store.save("lib", Artifact(config=FileConfig(), release=ReleaseState()))

    loaded = store.load("lib")

    assert loaded.config is None
    assert loaded.generate is None
    assert loaded.release == ReleaseState()
    assert "config" not in (tmp_path / "lib" / STATE_FILE).read_text(encoding="utf-8")


def test_load_missing_returns_empty_artifact(tmp_path: Path) -> None:
    assert ArtifactStore(tmp_path).load("nowhere") == Artifact()


def test_remove_twice_succeeds(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)
    store.save("lib", _full_artifact())

    assert store.remove("lib") is True
    assert store.remove("lib") is False
    assert not store.exists("lib")


def test_load_all_counts_only_state_documents(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write(
        {
            "README.md": "# repo\n",
            "a/main.go": "package a\n",
            "a/.librarian.yaml.bak": "not a state document\n",
            "nested/deeper/notes.txt": "hello\n",
        }
    )
    repo_builder.write_state("a", {"release": {"version": "v1.0.0"}})
    repo_builder.write_state("nested/deeper/c", {"release": {"version": "unreleased"}})
    repo_builder.write_state(".", {"release": {"version": "v0.1.0"}})
    repo_builder.write_state(".git/hidden", {"release": {"version": "v9.0.0"}})

    artifacts = ArtifactStore(repo_builder.path()).load_all()

    assert sorted(artifacts) == [".", "a", "nested/deeper/c"]
    assert artifacts["a"].release is not None
    assert artifacts["a"].release.version == "v1.0.0"


def test_keys_are_normalised(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)

    assert store.key("./lib/") == "lib"
    assert store.key(tmp_path / "lib" / "sub") == "lib/sub"
    assert store.key("") == "."


def test_malformed_document_raises(tmp_path: Path) -> None:
    (tmp_path / "lib").mkdir()
    (tmp_path / "lib" / STATE_FILE).write_text("release: [unterminated\n", encoding="utf-8")

    with pytest.raises(StateParseError) as excinfo:
        ArtifactStore(tmp_path).load("lib")
    assert STATE_FILE in str(excinfo.value)


def test_unknown_language_block_raises(tmp_path: Path) -> None:
    (tmp_path / "lib").mkdir()
    (tmp_path / "lib" / STATE_FILE).write_text("language:\n  cobol:\n    name: x\n", encoding="utf-8")

    with pytest.raises(StateParseError):
        ArtifactStore(tmp_path).load("lib")


def test_serialised_layout_is_stable() -> None:
    payload = artifact_to_dict(_full_artifact())

    assert list(payload) == ["generate", "release", "config", "language"]
    assert payload["generate"]["googleapis"] == {
        "repo": "github.com/googleapis/googleapis",
        "ref": "abc",
    }
    assert payload["generate"]["apis"][1] == {"path": "google/cloud/secretmanager/v1beta2"}
    assert payload["config"] == {"keep": ["CHANGES.md", "README.md"], "exclude": ["internal/*"]}
