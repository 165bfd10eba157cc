from __future__ import annotations

import pytest

from services.bootstrap.models import VersionComparison
from services.bootstrap.versioning import compare_versions, is_at_least, parse_version


@pytest.mark.parametrize(
    ("local", "remote", "expected"),
    [
        ("1.0.0", "1.0.1", VersionComparison.UPDATE_AVAILABLE),
        ("1.0.1", "1.0.1", VersionComparison.UP_TO_DATE),
        ("1.0", "1.0.0", VersionComparison.UP_TO_DATE),
        ("1.9.0", "1.10.0", VersionComparison.UPDATE_AVAILABLE),
        ("2.0.0", "1.9.9", VersionComparison.UP_TO_DATE),
        (None, "0.1.0", VersionComparison.UPDATE_AVAILABLE),
        ("not-a-version", "1.0.1", VersionComparison.UNKNOWN),
        ("1.0.0", "latest", VersionComparison.UNKNOWN),
        (None, "", VersionComparison.UNKNOWN),
        ("1.0.0", "1.0.1-beta", VersionComparison.UNKNOWN),
        ("1.0.0", "1.0.1+build5", VersionComparison.UNKNOWN),
        ("1.0.0", "v1.0.1", VersionComparison.UNKNOWN),
        ("1.0.0", "1.0.1.post1", VersionComparison.UNKNOWN),
        ("1.0.0", "1!0.1", VersionComparison.UNKNOWN),
        ("1.0.0rc1", "1.0.1", VersionComparison.UNKNOWN),
    ],
)
def test_compare_versions(local, remote, expected) -> None:
    assert compare_versions(local, remote) is expected


def test_numeric_components_are_not_compared_lexically() -> None:
    assert parse_version("1.10.0") > parse_version("1.9.0")


def test_parse_version_rejects_non_text() -> None:
    assert parse_version(None) is None
    assert parse_version(101) is None
    assert parse_version("   ") is None


def test_is_at_least_reports_unknown_for_malformed_values() -> None:
    assert is_at_least("10.0.19045", "10.0.17763") is True
    assert is_at_least("6.1.7601", "10.0") is False
    assert is_at_least("Windows 10", "10.0") is None
    assert is_at_least("10.0.19045", "10.0rc1") is None
    assert is_at_least("10.0.19045-beta", "10.0") is None


@pytest.mark.parametrize("raw", ["1.0.1-beta", "1.0.1+build5", "v1.0.1", "1.0.1.post1", "1!0.1", "1..0"])
def test_parse_version_accepts_dotted_numbers_only(raw) -> None:
    assert parse_version(raw) is None
    assert parse_version(" 1.0.1 ") == parse_version("1.0.1")
