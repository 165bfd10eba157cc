"""Helpers for comparing release versions."""

from __future__ import annotations

import re

from packaging.version import InvalidVersion, Version

from services.bootstrap.models import VersionComparison


__all__ = [
    "compare_versions",
    "is_at_least",
    "parse_version",
]

_DOTTED_NUMERIC = re.compile(r"[0-9]+(?:\.[0-9]+)*")


def parse_version(raw: object) -> Version | None:
    """Return a comparable version for ``raw`` or ``None`` when it is malformed.

    Only plain dotted-numeric versions are accepted; pre-release, post-release,
    build metadata, epochs and ``v`` prefixes are treated as malformed.
    Trailing zero components do not affect ordering, so ``1.0`` equals ``1.0.0``.
    """

    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not _DOTTED_NUMERIC.fullmatch(text):
        return None
    try:
        return Version(text)
    except InvalidVersion:
        return None


def compare_versions(local: str | None, remote: str) -> VersionComparison:
    """Decide whether ``remote`` should replace the installed ``local`` version.

    A missing ``local`` means nothing is installed yet.  Whenever either side
    cannot be parsed the ordering is :attr:`VersionComparison.UNKNOWN` so the
    caller can refuse to install.  Older releases never count as updates.
    """

    remote_version = parse_version(remote)
    if remote_version is None:
        return VersionComparison.UNKNOWN
    if local is None:
        return VersionComparison.UPDATE_AVAILABLE

    local_version = parse_version(local)
    if local_version is None:
        return VersionComparison.UNKNOWN
    if remote_version > local_version:
        return VersionComparison.UPDATE_AVAILABLE
    return VersionComparison.UP_TO_DATE


def is_at_least(actual: str, minimum: str) -> bool | None:
    """Return whether ``actual >= minimum``; ``None`` when either is malformed."""

    actual_version = parse_version(actual)
    minimum_version = parse_version(minimum)
    if actual_version is None or minimum_version is None:
        return None
    return actual_version >= minimum_version
