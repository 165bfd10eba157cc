"""Host prerequisite checks performed before anything is downloaded."""

from __future__ import annotations

import logging
import platform
import sys

from services.bootstrap.constants import VC_REDIST_REGISTRY_KEYS
from services.bootstrap.models import (
    HostEnvironment,
    PrerequisiteCheck,
    PrerequisiteFailure,
    PrerequisiteFailureKind,
    Prerequisites,
)
from services.bootstrap.versioning import is_at_least


_LOGGER = logging.getLogger(__name__)

__all__ = ["check_prerequisites", "detect_host"]


def _normalize_os(system: str) -> str:
    lowered = system.lower()
    if lowered.startswith("win"):
        return "windows"
    if lowered.startswith("darwin") or lowered.startswith("mac"):
        return "macos"
    return "linux"


def detect_host() -> HostEnvironment:
    """Describe the running machine."""

    os_name = _normalize_os(platform.system())
    if os_name == "windows":
        os_version = platform.version()
    else:
        os_version = platform.release()
    return HostEnvironment(
        os_name=os_name,
        os_version=os_version,
        has_vc_redist=_vc_redist_installed() if os_name == "windows" else False,
    )


def _vc_redist_installed() -> bool:  # pragma: no cover - requires Windows
    if not sys.platform.startswith("win"):
        return False
    import winreg

    for key_path in VC_REDIST_REGISTRY_KEYS:
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, key_path) as key:
                installed, _ = winreg.QueryValueEx(key, "Installed")
        except OSError:
            continue
        if installed == 1:
            return True
    return False


def check_prerequisites(
    prerequisites: Prerequisites, host: HostEnvironment
) -> PrerequisiteCheck:
    """Check ``prerequisites`` against ``host``; unknown ordering fails closed."""

    minimum = prerequisites.windows_version_min
    if minimum is not None:
        _LOGGER.info(
            "Checking Windows version requirement %s against %s %s",
            minimum,
            host.os_name,
            host.os_version,
        )
        if not host.is_windows:
            return PrerequisiteCheck.failed(
                PrerequisiteFailure(
                    PrerequisiteFailureKind.UNSUPPORTED_PLATFORM,
                    f"Windows {minimum} or newer is required but this host runs {host.os_name}",
                )
            )
        meets_minimum = is_at_least(host.os_version, minimum)
        if meets_minimum is None:
            return PrerequisiteCheck.failed(
                PrerequisiteFailure(
                    PrerequisiteFailureKind.OS_VERSION_UNKNOWN,
                    f"could not compare Windows version {host.os_version!r} with {minimum!r}",
                )
            )
        if not meets_minimum:
            return PrerequisiteCheck.failed(
                PrerequisiteFailure(
                    PrerequisiteFailureKind.OS_TOO_OLD,
                    f"Windows {minimum} or newer is required, found {host.os_version}",
                )
            )

    redist = prerequisites.vc_redist
    if redist is not None and redist.required:
        _LOGGER.info("Checking for the Visual C++ Redistributable")
        if not host.has_vc_redist:
            return PrerequisiteCheck.failed(
                PrerequisiteFailure(
                    PrerequisiteFailureKind.MISSING_REDISTRIBUTABLE,
                    "the Visual C++ Redistributable is not installed",
                    url=redist.url,
                )
            )

    _LOGGER.info("All prerequisites satisfied")
    return PrerequisiteCheck.passed()
