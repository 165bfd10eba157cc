"""Data models used by the bootstrap pipeline."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Tuple


@dataclass(frozen=True)
class ManifestFile:
    """A payload entry the release archive must contain."""

    name: str


@dataclass(frozen=True)
class VcRedist:
    required: bool
    url: str


@dataclass(frozen=True)
class Prerequisites:
    """Host requirements declared by the manifest; ``None`` means no requirement."""

    windows_version_min: str | None = None
    vc_redist: VcRedist | None = None


@dataclass(frozen=True)
class ReleaseManifest:
    """Validated description of the current release."""

    version: str
    release_zip_url: str
    sha256: str
    files: Tuple[ManifestFile, ...]
    prerequisites: Prerequisites = field(default_factory=Prerequisites)
    license_check_url: str | None = None

    @property
    def file_names(self) -> Tuple[str, ...]:
        return tuple(entry.name for entry in self.files)


@dataclass(frozen=True)
class LocalInstallState:
    """What is installed where, as recorded after the last successful install."""

    installed_version: str | None
    install_root: Path

    def for_root(self, install_root: Path) -> "LocalInstallState":
        """Return the state as seen from ``install_root``.

        A recorded version only applies to the root it was installed into, and
        only while that directory still exists.
        """

        install_root = Path(install_root)
        if same_path(install_root, self.install_root) and install_root.is_dir():
            return replace(self, install_root=install_root)
        return LocalInstallState(installed_version=None, install_root=install_root)

    def with_version(self, version: str) -> "LocalInstallState":
        return replace(self, installed_version=version)


def same_path(first: Path, second: Path) -> bool:
    try:
        return first.resolve() == second.resolve()
    except OSError:
        return first == second


@dataclass(frozen=True)
class DownloadArtifact:
    """Archive bytes sitting in a private temporary directory, not yet trusted."""

    path: Path
    source_url: str
    bytes_received: int
    expected_bytes: int | None = None

    def discard(self) -> None:
        shutil.rmtree(self.path.parent, ignore_errors=True)


@dataclass(frozen=True)
class VerifiedArtifact:
    """An artifact whose full content matched the manifest digest."""

    path: Path
    sha256: str

    def discard(self) -> None:
        shutil.rmtree(self.path.parent, ignore_errors=True)


@dataclass(frozen=True)
class HostEnvironment:
    """Facts about the machine the release would be installed on."""

    os_name: str
    os_version: str
    has_vc_redist: bool

    @property
    def is_windows(self) -> bool:
        return self.os_name == "windows"


class PrerequisiteFailureKind(str, Enum):
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    OS_VERSION_UNKNOWN = "os_version_unknown"
    OS_TOO_OLD = "os_too_old"
    MISSING_REDISTRIBUTABLE = "missing_redistributable"


@dataclass(frozen=True)
class PrerequisiteFailure:
    kind: PrerequisiteFailureKind
    detail: str
    url: str | None = None


@dataclass(frozen=True)
class PrerequisiteCheck:
    failure: PrerequisiteFailure | None = None

    @property
    def satisfied(self) -> bool:
        return self.failure is None

    @classmethod
    def passed(cls) -> "PrerequisiteCheck":
        return cls()

    @classmethod
    def failed(cls, failure: PrerequisiteFailure) -> "PrerequisiteCheck":
        return cls(failure=failure)


class VersionComparison(str, Enum):
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    UNKNOWN = "unknown"


class InstallPhase(str, Enum):
    IDLE = "idle"
    STAGING = "staging"
    VERIFIED_COMPLETE = "verified_complete"
    PROMOTING = "promoting"
    INSTALLED = "installed"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    INSTALLED = "installed"
    DRY_RUN = "dry_run"


@dataclass(frozen=True)
class BootstrapOutcome:
    """Successful end state of a pipeline run."""

    status: OutcomeStatus
    version: str | None
    install_root: Path


__all__ = [
    "BootstrapOutcome",
    "DownloadArtifact",
    "HostEnvironment",
    "InstallPhase",
    "LocalInstallState",
    "ManifestFile",
    "OutcomeStatus",
    "Prerequisites",
    "PrerequisiteCheck",
    "PrerequisiteFailure",
    "PrerequisiteFailureKind",
    "ReleaseManifest",
    "VcRedist",
    "VerifiedArtifact",
    "VersionComparison",
    "same_path",
]
