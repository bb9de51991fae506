"""Tests for BUILD.bazel parameter extraction."""

from __future__ import annotations

import textwrap

import pytest

from librarian.bazel import DirectoryBuildRuleSource, derive_api_config, parse_build_file
from librarian.errors import BuildRuleParseError

BUILD = textwrap.dedent(
    """
    load("@com_google_googleapis_imports//:imports.bzl", "go_gapic_library", "py_gapic_library")

    proto_library(
        name = "secretmanager_proto",
        srcs = ["service.proto"],
    )

    go_gapic_library(
        name = "secretmanager_go_gapic",
        srcs = [":secretmanager_proto_with_info"],
        grpc_service_config = "secretmanager_grpc_service_config.json",
        service_yaml = "secretmanager_v1.yaml",
        transport = "grpc+rest",
        rest_numeric_enums = True,
        importpath = "cloud.google.com/go/secretmanager/apiv1;secretmanager",
        some_future_attribute = {"nested": 1},
    )

    py_gapic_library(
        name = "secretmanager_py_gapic",
        grpc_service_config = "secretmanager_grpc_service_config.json",
        transport = "grpc",
        opt_args = [
            "warehouse-package-name=google-cloud-secret-manager",
            "python-gapic-namespace=google.cloud",
        ],
    )
    """
)


def test_matches_go_rule() -> None:
    api = parse_build_file(BUILD, "go")

    assert api is not None
    assert api.grpc_service_config == "secretmanager_grpc_service_config.json"
    assert api.service_config == "secretmanager_v1.yaml"
    assert api.transport == "grpc+rest"
    assert api.rest_numeric_enums is True
    assert api.opt_args == []


def test_python_uses_py_rule_token() -> None:
    api = parse_build_file(BUILD, "python")

    assert api is not None
    assert api.transport == "grpc"
    assert api.rest_numeric_enums is False
    assert api.opt_args == [
        "warehouse-package-name=google-cloud-secret-manager",
        "python-gapic-namespace=google.cloud",
    ]


def test_rule_kind_matches_without_conventional_name() -> None:
    text = 'rust_gapic_library(name = "custom", transport = "rest")\n'

    api = parse_build_file(text, "rust")

    assert api is not None
    assert api.transport == "rest"


def test_no_rule_for_language_returns_none() -> None:
    assert parse_build_file(BUILD, "dart") is None


def test_unparseable_build_file_raises() -> None:
    with pytest.raises(BuildRuleParseError):
        parse_build_file("go_gapic_library(name = \n", "go", filename="x/BUILD.bazel")


def test_derive_from_directory(tmp_path) -> None:  # type: ignore[no-untyped-def]
    api_dir = tmp_path / "google" / "cloud" / "secretmanager" / "v1"
    api_dir.mkdir(parents=True)
    (api_dir / "BUILD.bazel").write_text(BUILD, encoding="utf-8")
    source = DirectoryBuildRuleSource(tmp_path)

    api = derive_api_config(source, "google/cloud/secretmanager/v1", "go")

    assert api is not None
    assert api.path == "google/cloud/secretmanager/v1"
    assert derive_api_config(source, "google/cloud/missing/v1", "go") is None
