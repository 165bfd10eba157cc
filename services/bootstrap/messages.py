"""User-facing explanations for bootstrap failures."""

from __future__ import annotations

from dataclasses import dataclass

from services.bootstrap.errors import (
    BootstrapError,
    DownloadIncomplete,
    ErrorKind,
    IncompleteArchive,
    PrerequisiteUnsatisfied,
)
from services.bootstrap.models import PrerequisiteFailureKind


@dataclass(frozen=True)
class FailureNotice:
    title: str
    reason: str
    advice: str


_NOTICES: dict[ErrorKind, tuple[str, str]] = {
    ErrorKind.MANIFEST_UNREACHABLE: (
        "Update server unreachable",
        "Check your internet connection or proxy settings and try again.",
    ),
    ErrorKind.MANIFEST_MALFORMED: (
        "Release information is invalid",
        "The published release description is damaged. Try again later or contact support.",
    ),
    ErrorKind.VERSION_UNKNOWN: (
        "Version could not be determined",
        "The installed or published version number is not recognised. Reinstall into an "
        "empty folder or contact support.",
    ),
    ErrorKind.PREREQUISITE_UNSATISFIED: (
        "System requirements not met",
        "Update Windows or install the missing component, then run the installer again.",
    ),
    ErrorKind.DOWNLOAD_INCOMPLETE: (
        "Download interrupted",
        "The connection dropped before the download finished. Run the installer again to retry.",
    ),
    ErrorKind.HASH_MISMATCH: (
        "Download failed verification",
        "The downloaded file does not match the published checksum and was deleted. It may "
        "have been corrupted or tampered with; do not install it manually.",
    ),
    ErrorKind.INCOMPLETE_ARCHIVE: (
        "Release package is incomplete",
        "The release package is missing required files. Wait for a corrected release.",
    ),
    ErrorKind.INSTALL_FAILED: (
        "Installation failed",
        "Your previous installation was left unchanged. Close any program using the install "
        "folder, check free disk space and try again.",
    ),
    ErrorKind.INSTALL_LOCKED: (
        "Installer already running",
        "Another installer is working on this folder. Wait for it to finish and try again.",
    ),
}

_PREREQUISITE_ADVICE: dict[PrerequisiteFailureKind, str] = {
    PrerequisiteFailureKind.UNSUPPORTED_PLATFORM: "This application only runs on Windows.",
    PrerequisiteFailureKind.OS_VERSION_UNKNOWN: (
        "Your Windows version could not be read. Run Windows Update and try again."
    ),
    PrerequisiteFailureKind.OS_TOO_OLD: "Update Windows to a supported version and try again.",
    PrerequisiteFailureKind.MISSING_REDISTRIBUTABLE: (
        "Install the Microsoft Visual C++ Redistributable and run the installer again."
    ),
}


def describe_failure(error: BootstrapError) -> FailureNotice:
    """Return the title, reason and advice to show for ``error``."""

    title, advice = _NOTICES.get(error.kind, _NOTICES[ErrorKind.INSTALL_FAILED])
    reason = str(error)

    if isinstance(error, PrerequisiteUnsatisfied):
        advice = _PREREQUISITE_ADVICE.get(error.failure.kind, advice)
        if error.failure.url:
            advice = f"{advice} Download: {error.failure.url}"
    elif isinstance(error, DownloadIncomplete) and error.reason == "cancelled":
        title = "Download cancelled"
        advice = "Run the installer again when you are ready."
    elif isinstance(error, IncompleteArchive):
        reason = "Missing files: " + ", ".join(error.missing)

    return FailureNotice(title=title, reason=reason, advice=advice)


__all__ = ["FailureNotice", "describe_failure"]
