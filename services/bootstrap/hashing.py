"""Hashing helpers for release archive verification."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from pathlib import Path

from services.bootstrap.constants import SHA256_HEX_LENGTH
from services.bootstrap.errors import HashMismatch, InstallFailed
from services.bootstrap.models import DownloadArtifact, VerifiedArtifact


_LOGGER = logging.getLogger(__name__)

_SHA256_PATTERN = re.compile(rf"[0-9a-fA-F]{{{SHA256_HEX_LENGTH}}}")


def calculate_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as source:
        for chunk in iter(lambda: source.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def is_sha256_hex(value: object) -> bool:
    return isinstance(value, str) and _SHA256_PATTERN.fullmatch(value) is not None


def digests_match(expected: str, actual: str) -> bool:
    """Case-insensitive hex comparison that does not leak timing."""

    return hmac.compare_digest(expected.strip().lower(), actual.strip().lower())


def verify_artifact(artifact: DownloadArtifact, expected_digest: str) -> VerifiedArtifact:
    """Hash the whole of ``artifact`` and compare it with ``expected_digest``.

    The artifact is discarded whenever it cannot be trusted.
    """

    _LOGGER.info("Verifying SHA-256 for %s", artifact.path)
    try:
        actual = calculate_sha256(artifact.path)
    except OSError as exc:
        artifact.discard()
        raise InstallFailed(f"could not read downloaded archive: {exc}") from exc

    if not digests_match(expected_digest, actual):
        _LOGGER.warning(
            "SHA-256 verification failed for %s: expected %s, got %s",
            artifact.path,
            expected_digest.lower(),
            actual,
        )
        artifact.discard()
        raise HashMismatch(expected_digest.lower(), actual)

    _LOGGER.info("SHA-256 verification passed for %s", artifact.path)
    return VerifiedArtifact(path=artifact.path, sha256=actual)


__all__ = ["calculate_sha256", "digests_match", "is_sha256_hex", "verify_artifact"]
