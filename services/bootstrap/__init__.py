"""Public API for the bootstrap pipeline package."""

from __future__ import annotations

from services.bootstrap.builder import (
    build_bootstrap_service,
    run_bootstrap,
    start_bootstrap_in_background,
)
from services.bootstrap.constants import (
    MAX_ARCHIVE_ENTRIES,
    MAX_ARCHIVE_FILE_SIZE,
    MAX_ARCHIVE_TOTAL_BYTES,
    MAX_COMPRESSION_RATIO,
    MAX_DOWNLOAD_BYTES,
    MAX_MANIFEST_BYTES,
)
from services.bootstrap.download import ArchiveFetcher
from services.bootstrap.errors import (
    BootstrapError,
    DownloadIncomplete,
    ErrorKind,
    HashMismatch,
    IncompleteArchive,
    InstallFailed,
    InstallLocked,
    ManifestMalformed,
    ManifestUnreachable,
    PrerequisiteUnsatisfied,
    VersionUnknown,
)
from services.bootstrap.hashing import calculate_sha256, verify_artifact
from services.bootstrap.installers import RedistributableInstaller, WindowsRedistributableInstaller
from services.bootstrap.manifest import ManifestClient, parse_manifest
from services.bootstrap.messages import FailureNotice, describe_failure
from services.bootstrap.models import (
    BootstrapOutcome,
    DownloadArtifact,
    HostEnvironment,
    InstallPhase,
    LocalInstallState,
    ManifestFile,
    OutcomeStatus,
    PrerequisiteCheck,
    PrerequisiteFailure,
    PrerequisiteFailureKind,
    Prerequisites,
    ReleaseManifest,
    VcRedist,
    VerifiedArtifact,
    VersionComparison,
)
from services.bootstrap.prerequisites import check_prerequisites, detect_host
from services.bootstrap.recovery import recover_interrupted_install
from services.bootstrap.service import BootstrapResult, BootstrapService
from services.bootstrap.staging import StagedInstaller
from services.bootstrap.state import StateStore
from services.bootstrap.versioning import compare_versions

__all__ = [
    "MAX_ARCHIVE_ENTRIES",
    "MAX_ARCHIVE_FILE_SIZE",
    "MAX_ARCHIVE_TOTAL_BYTES",
    "MAX_COMPRESSION_RATIO",
    "MAX_DOWNLOAD_BYTES",
    "MAX_MANIFEST_BYTES",
    "ArchiveFetcher",
    "BootstrapError",
    "BootstrapOutcome",
    "BootstrapResult",
    "BootstrapService",
    "DownloadArtifact",
    "DownloadIncomplete",
    "ErrorKind",
    "FailureNotice",
    "HashMismatch",
    "HostEnvironment",
    "IncompleteArchive",
    "InstallFailed",
    "InstallLocked",
    "InstallPhase",
    "LocalInstallState",
    "ManifestClient",
    "ManifestFile",
    "ManifestMalformed",
    "ManifestUnreachable",
    "OutcomeStatus",
    "PrerequisiteCheck",
    "PrerequisiteFailure",
    "PrerequisiteFailureKind",
    "PrerequisiteUnsatisfied",
    "Prerequisites",
    "RedistributableInstaller",
    "ReleaseManifest",
    "StagedInstaller",
    "StateStore",
    "VcRedist",
    "VerifiedArtifact",
    "VersionComparison",
    "VersionUnknown",
    "WindowsRedistributableInstaller",
    "build_bootstrap_service",
    "calculate_sha256",
    "check_prerequisites",
    "compare_versions",
    "describe_failure",
    "detect_host",
    "parse_manifest",
    "recover_interrupted_install",
    "run_bootstrap",
    "start_bootstrap_in_background",
    "verify_artifact",
]
