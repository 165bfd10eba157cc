"""Exception taxonomy for the bootstrap pipeline.

Every stage fails closed by raising one of these errors.  The orchestrator
turns them into :class:`shared.result.Result` values, and
:mod:`services.bootstrap.messages` maps each :class:`ErrorKind` to its own
user-facing explanation.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from services.bootstrap.models import PrerequisiteFailure


class ErrorKind(str, Enum):
    MANIFEST_UNREACHABLE = "manifest_unreachable"
    MANIFEST_MALFORMED = "manifest_malformed"
    VERSION_UNKNOWN = "version_unknown"
    PREREQUISITE_UNSATISFIED = "prerequisite_unsatisfied"
    DOWNLOAD_INCOMPLETE = "download_incomplete"
    HASH_MISMATCH = "hash_mismatch"
    INCOMPLETE_ARCHIVE = "incomplete_archive"
    INSTALL_FAILED = "install_failed"
    INSTALL_LOCKED = "install_locked"


class BootstrapError(RuntimeError):
    """Base class for failures that abort a bootstrap run."""

    kind: ErrorKind = ErrorKind.INSTALL_FAILED


class ManifestUnreachable(BootstrapError):
    kind = ErrorKind.MANIFEST_UNREACHABLE

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Could not retrieve release manifest from {url}: {reason}")
        self.url = url
        self.reason = reason


class ManifestMalformed(BootstrapError):
    kind = ErrorKind.MANIFEST_MALFORMED

    def __init__(self, reason: str) -> None:
        super().__init__(f"Release manifest is malformed: {reason}")
        self.reason = reason


class VersionUnknown(BootstrapError):
    kind = ErrorKind.VERSION_UNKNOWN

    def __init__(self, local: str | None, remote: str) -> None:
        super().__init__(
            f"Cannot order installed version {local!r} against release version {remote!r}"
        )
        self.local = local
        self.remote = remote


class PrerequisiteUnsatisfied(BootstrapError):
    kind = ErrorKind.PREREQUISITE_UNSATISFIED

    def __init__(self, failure: "PrerequisiteFailure") -> None:
        super().__init__(f"Prerequisite not satisfied: {failure.detail}")
        self.failure = failure


class DownloadIncomplete(BootstrapError):
    kind = ErrorKind.DOWNLOAD_INCOMPLETE

    def __init__(
        self,
        url: str,
        *,
        bytes_received: int,
        expected_bytes: int | None,
        reason: str,
    ) -> None:
        expected = "unknown" if expected_bytes is None else str(expected_bytes)
        super().__init__(
            f"Download of {url} stopped after {bytes_received} of {expected} bytes: {reason}"
        )
        self.url = url
        self.bytes_received = bytes_received
        self.expected_bytes = expected_bytes
        self.reason = reason


class HashMismatch(BootstrapError):
    kind = ErrorKind.HASH_MISMATCH

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(
            f"Release archive hash mismatch: expected {expected} but received {actual}"
        )
        self.expected = expected
        self.actual = actual


class IncompleteArchive(BootstrapError):
    kind = ErrorKind.INCOMPLETE_ARCHIVE

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(
            "Release archive is missing declared files: " + ", ".join(self.missing)
        )


class InstallFailed(BootstrapError):
    kind = ErrorKind.INSTALL_FAILED

    def __init__(self, reason: str) -> None:
        super().__init__(f"Installation failed: {reason}")
        self.reason = reason


class InstallLocked(InstallFailed):
    kind = ErrorKind.INSTALL_LOCKED

    def __init__(self, lock_path: str, owner_pid: int | None) -> None:
        owner = "another process" if owner_pid is None else f"process {owner_pid}"
        super().__init__(f"{lock_path} is held by {owner}")
        self.lock_path = lock_path
        self.owner_pid = owner_pid


__all__ = [
    "BootstrapError",
    "DownloadIncomplete",
    "ErrorKind",
    "HashMismatch",
    "IncompleteArchive",
    "InstallFailed",
    "InstallLocked",
    "ManifestMalformed",
    "ManifestUnreachable",
    "PrerequisiteUnsatisfied",
    "VersionUnknown",
]
