"""Tests for librarian.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from librarian.config import (
    CONFIG_KEYS,
    LANGUAGE_NONE,
    ContainerConfig,
    RepositoryConfig,
    config_path,
    default_config,
    get_value,
    load_config,
    save_config,
    set_value,
)
from librarian.errors import (
    ConfigNotFound,
    ConfigParseError,
    InvalidConfigValue,
    UnknownConfigKey,
)


def test_load_config_missing_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigNotFound):
        load_config(tmp_path)


def test_load_config_parses_expected_fields(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write(
        {
            ".librarian/config.yaml": """
            # managed by librarian
            librarian:
              version: v0.4.0
              language: python
            generate:
              container:
                image: example/python-generator
                tag: "2.1"
              googleapis:
                repo: github.com/googleapis/googleapis
                ref: 0123abc
              dir: packages/
            release:
              tag_format: "{name}-v{version}"
              branch_patterns:
                - pattern: release/*
                  prerelease: rc
            """
        }
    )

    config = load_config(repo_builder.path())

    assert config.version == "v0.4.0"
    assert config.language == "python"
    assert config.generate is not None
    assert config.generate.container is not None
    assert config.generate.container.reference() == "example/python-generator:2.1"
    assert config.generate.googleapis is not None
    assert config.generate.googleapis.ref == "0123abc"
    assert config.generate.discovery is None
    assert config.release is not None
    assert config.release.branch_patterns[0].prerelease == "rc"


def test_load_config_rejects_malformed_yaml(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write({".librarian/config.yaml": "librarian: {version: [\n"})

    with pytest.raises(ConfigParseError):
        load_config(repo_builder.path())


def test_release_only_config_cannot_carry_generate(repo_builder) -> None:  # type: ignore[no-untyped-def]
    repo_builder.write_config(
        {"librarian": {"version": "v1"}, "generate": {"dir": "packages/"}}
    )

    with pytest.raises(ConfigParseError):
        load_config(repo_builder.path())


def test_save_then_load_round_trips(tmp_path: Path) -> None:
    config = default_config("go", "v0.1.0")
    config.generate.googleapis.ref = "deadbeef"  # type: ignore[union-attr]

    path = save_config(tmp_path, config)

    assert path == config_path(tmp_path)
    assert load_config(tmp_path) == config


def test_release_only_config_omits_language(tmp_path: Path) -> None:
    save_config(tmp_path, default_config("none", "v0.1.0"))

    text = config_path(tmp_path).read_text(encoding="utf-8")
    assert "language" not in text
    assert "generate" not in text
    assert load_config(tmp_path).language == LANGUAGE_NONE


def test_default_config_for_language() -> None:
    config = default_config("Rust", "v0.2.0")

    assert config.language == "rust"
    assert config.release is not None
    assert config.release.tag_format == "{name}-v{version}"
    assert config.generate is not None
    assert config.generate.container is not None
    assert config.generate.container.image.endswith("/rust-librarian-generator")
    assert config.generate.container.tag == "latest"
    assert config.generate.dir == "packages/"


def test_default_config_rejects_unknown_language() -> None:
    with pytest.raises(InvalidConfigValue):
        default_config("cobol", "v0.1.0")


def test_get_returns_empty_for_unset_optional_fields() -> None:
    config = RepositoryConfig(version="v1", language="go")

    for key in CONFIG_KEYS:
        if key in ("librarian.version", "librarian.language"):
            continue
        assert get_value(config, key) == ""


def test_set_and_get_every_key() -> None:
    config = default_config("dart", "v1")

    set_value(config, "generate.container", "example/img:v5")
    assert get_value(config, "generate.container.image") == "example/img"
    assert get_value(config, "generate.container.tag") == "v5"

    set_value(config, "generate.container.tag", "v6")
    assert get_value(config, "generate.container") == "example/img:v6"

    set_value(config, "generate.discovery.ref", "cafe")
    assert get_value(config, "generate.discovery.ref") == "cafe"

    set_value(config, "release.tag_format", "v{version}")
    assert get_value(config, "release.tag_format") == "v{version}"

    set_value(config, "librarian.language", "python")
    assert get_value(config, "librarian.language") == "python"


def test_unknown_key_raises() -> None:
    config = RepositoryConfig()

    with pytest.raises(UnknownConfigKey) as excinfo:
        set_value(config, "generate.nope", "x")
    assert excinfo.value.key == "generate.nope"
    with pytest.raises(UnknownConfigKey):
        get_value(config, "librarian")


def test_release_only_invariant_is_enforced_on_set() -> None:
    release_only = default_config("none", "v1")
    with pytest.raises(InvalidConfigValue):
        set_value(release_only, "generate.dir", "out/")
    assert release_only.generate is None

    generating = default_config("go", "v1")
    with pytest.raises(InvalidConfigValue):
        set_value(generating, "librarian.language", "none")
    with pytest.raises(InvalidConfigValue):
        set_value(generating, "librarian.language", "java")


@pytest.mark.parametrize(
    ("value", "image", "tag"),
    [
        ("localhost:5000/gen:v2", "localhost:5000/gen", "v2"),
        ("localhost:5000/gen", "localhost:5000/gen", "latest"),
        ("example/gen:v3", "example/gen", "v3"),
    ],
)
def test_container_sugar_keeps_registry_port(value: str, image: str, tag: str) -> None:
    config = default_config("go", "v1")

    set_value(config, "generate.container", value)

    assert get_value(config, "generate.container.image") == image
    assert get_value(config, "generate.container.tag") == tag


def test_container_reference_without_image_is_empty() -> None:
    assert ContainerConfig(tag="latest").reference() == ""
    assert ContainerConfig(image="example/gen").reference() == "example/gen"
