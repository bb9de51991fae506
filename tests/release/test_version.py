"""Tests for librarian.release.version."""

from __future__ import annotations

import pytest

from librarian.errors import InvalidVersionFormat
from librarian.release.version import (
    UNRELEASED,
    has_prerelease,
    increment_version,
    is_unreleased,
    parse_version,
    remove_prerelease,
)


def test_unreleased_starts_at_zero_one() -> None:
    assert increment_version(UNRELEASED, "") == "v0.1.0"
    assert increment_version(UNRELEASED, "rc") == "v0.1.0-rc.1"


@pytest.mark.parametrize(
    ("previous", "label", "expected"),
    [
        ("v1.0.0", "", "v1.1.0"),
        ("1.0.0", "", "v1.1.0"),
        ("v1.0.5", "", "v1.1.0"),
        ("v1.1.0-rc.1", "rc", "v1.1.0-rc.2"),
        ("v1.1.0-rc.2", "", "v1.1.0"),
        ("v1.0.0", "rc", "v1.1.0-rc.1"),
        ("v0.3.0-alpha.4", "beta", "v0.4.0-beta.1"),
    ],
)
def test_increment_rules(previous: str, label: str, expected: str) -> None:
    assert increment_version(previous, label) == expected


def test_repeated_prerelease_counter_strictly_increases() -> None:
    version = increment_version("v2.0.0", "alpha")
    counters = []
    for _ in range(4):
        counters.append(parse_version(version).counter)
        version = increment_version(version, "alpha")

    assert counters == [1, 2, 3, 4]
    assert increment_version(version, "") == "v2.1.0"


def test_label_switch_bumps_minor_again() -> None:
    rc = increment_version("v1.0.0", "rc")
    beta = increment_version(rc, "beta")

    assert rc == "v1.1.0-rc.1"
    assert beta == "v1.2.0-beta.1"


@pytest.mark.parametrize("major", [0, 1, 7])
@pytest.mark.parametrize("minor", [0, 3])
@pytest.mark.parametrize("patch", [0, 9])
def test_stable_increment_has_no_prerelease(major: int, minor: int, patch: int) -> None:
    result = increment_version(f"v{major}.{minor}.{patch}", "")

    assert not has_prerelease(result)
    assert remove_prerelease(result) == result


@pytest.mark.parametrize("previous", ["", "v1", "v1.2", "1.2.3.4", "v1.2.3-RC.1", "v1.2.3-rc", "latest"])
def test_invalid_versions_raise(previous: str) -> None:
    with pytest.raises(InvalidVersionFormat):
        increment_version(previous, "")


@pytest.mark.parametrize("label", ["RC", "rc1", "rc.1", "beta-2"])
def test_invalid_labels_raise(label: str) -> None:
    with pytest.raises(InvalidVersionFormat):
        increment_version("v1.0.0", label)


def test_remove_prerelease_and_detection() -> None:
    assert remove_prerelease("v1.2.3-rc.4") == "v1.2.3"
    assert remove_prerelease("v1.2.3") == "v1.2.3"
    assert has_prerelease("v1.2.3-beta.1")
    assert not has_prerelease("v1.2.3")


def test_is_unreleased() -> None:
    assert is_unreleased(None)
    assert is_unreleased(UNRELEASED)
    assert not is_unreleased("v0.1.0")
