"""Extracts GAPIC generation parameters from BUILD.bazel files.

BUILD files are Starlark, which parses as Python for the subset used by rule
declarations, so the stdlib ``ast`` module is enough to read literal attributes.
"""

from __future__ import annotations

import ast
from pathlib import Path
from typing import List, Optional, Protocol

from .errors import BuildRuleParseError
from .logging import get_logger
from .models import APIConfig

BUILD_FILE = "BUILD.bazel"

# Bazel rule token for each target language when it differs from the language name.
_RULE_TOKENS = {"python": "py"}

_logger = get_logger("bazel")


class BuildRuleSource(Protocol):
    """Read-only access to BUILD descriptions by API path."""

    def read(self, api_path: str) -> Optional[str]:
        ...


class DirectoryBuildRuleSource:
    """Reads ``<root>/<api_path>/BUILD.bazel`` from a googleapis checkout."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def read(self, api_path: str) -> Optional[str]:
        path = self.root / api_path / BUILD_FILE
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            _logger.warning("No %s found for %s under %s", BUILD_FILE, api_path, self.root)
            return None


def derive_api_config(
    source: BuildRuleSource, api_path: str, language: str
) -> Optional[APIConfig]:
    """Return generation parameters for ``api_path``, or None for proto-only APIs."""
    text = source.read(api_path)
    if text is None:
        return None
    api = parse_build_file(text, language, filename=f"{api_path}/{BUILD_FILE}")
    if api is not None:
        api.path = api_path
    return api


def parse_build_file(text: str, language: str, *, filename: str = BUILD_FILE) -> Optional[APIConfig]:
    try:
        tree = ast.parse(text, filename=filename)
    except SyntaxError as exc:
        raise BuildRuleParseError(f"failed to parse {filename}: {exc.msg} (line {exc.lineno})") from exc

    token = _RULE_TOKENS.get(language, language)
    name_suffix = f"_{token}_gapic"
    rule_kind = f"{token}_gapic_library"
    for call in _rule_calls(tree):
        name = _string_attr(call, "name")
        if _call_kind(call) == rule_kind or (name and name.endswith(name_suffix)):
            return _extract_api_config(call)
    return None


def _rule_calls(tree: ast.Module) -> List[ast.Call]:
    return [
        node.value
        for node in tree.body
        if isinstance(node, ast.Expr) and isinstance(node.value, ast.Call)
    ]


def _call_kind(call: ast.Call) -> str:
    func = call.func
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return ""


def _attr(call: ast.Call, name: str) -> Optional[ast.expr]:
    for keyword in call.keywords:
        if keyword.arg == name:
            return keyword.value
    return None


def _string_attr(call: ast.Call, name: str) -> str:
    node = _attr(call, name)
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return ""


def _bool_attr(call: ast.Call, name: str) -> bool:
    node = _attr(call, name)
    if isinstance(node, ast.Constant) and isinstance(node.value, bool):
        return node.value
    return False


def _string_list_attr(call: ast.Call, name: str) -> List[str]:
    node = _attr(call, name)
    if not isinstance(node, ast.List):
        return []
    return [
        element.value
        for element in node.elts
        if isinstance(element, ast.Constant) and isinstance(element.value, str)
    ]


def _extract_api_config(call: ast.Call) -> APIConfig:
    return APIConfig(
        path="",
        service_config=_string_attr(call, "service_yaml"),
        grpc_service_config=_string_attr(call, "grpc_service_config"),
        transport=_string_attr(call, "transport"),
        rest_numeric_enums=_bool_attr(call, "rest_numeric_enums"),
        opt_args=_string_list_attr(call, "opt_args"),
    )


__all__ = [
    "BUILD_FILE",
    "BuildRuleSource",
    "DirectoryBuildRuleSource",
    "derive_api_config",
    "parse_build_file",
]
