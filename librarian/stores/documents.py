"""YAML document helpers shared by the config and artifact stores."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml


def write_yaml(path: Path, payload: Dict[str, Any]) -> None:
    """Serialise ``payload`` and atomically replace ``path`` with it."""
    text = yaml.safe_dump(
        payload,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    _atomic_write_text(path, text)


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def drop_empty(value: Any, *, keep: Iterable[str] = ()) -> Any:
    """Recursively remove ``None``, empty strings, ``False`` and empty containers.

    Keys listed in ``keep`` survive even when their value is empty.
    """
    keep_keys = set(keep)
    if isinstance(value, dict):
        result: Dict[str, Any] = {}
        for key, item in value.items():
            cleaned = drop_empty(item, keep=keep_keys)
            if key in keep_keys or not _is_empty(cleaned):
                result[key] = cleaned
        return result
    if isinstance(value, list):
        return [drop_empty(item, keep=keep_keys) for item in value]
    return value


def _is_empty(value: Any) -> bool:
    return value is None or value is False or value == "" or value == [] or value == {}


def as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return False


def as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = ["as_bool", "as_dict", "as_str", "as_str_list", "drop_empty", "write_yaml"]
