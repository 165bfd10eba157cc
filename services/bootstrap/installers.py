"""Remediation installers for missing host prerequisites."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from typing import Any, Protocol
from urllib.parse import urlparse

from services.bootstrap.constants import VC_REDIST_ARGUMENTS, VC_REDIST_SUCCESS_CODES
from services.bootstrap.download import ArchiveFetcher
from services.bootstrap.errors import PrerequisiteUnsatisfied
from services.bootstrap.models import PrerequisiteFailure, PrerequisiteFailureKind

_LOGGER = logging.getLogger(__name__)

__all__ = ["RedistributableInstaller", "WindowsRedistributableInstaller"]


class RedistributableInstaller(Protocol):
    """Protocol describing how a missing runtime gets installed."""

    def install(self, url: str) -> None:
        """Download and run the redistributable found at ``url``."""


class WindowsRedistributableInstaller:
    """Download the VC++ redistributable and run it unattended."""

    def __init__(
        self,
        fetcher: ArchiveFetcher,
        *,
        timeout: float = 600.0,
        cancel: threading.Event | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._timeout = timeout
        self._cancel = cancel

    def install(self, url: str) -> None:
        file_name = os.path.basename(urlparse(url).path) or "vc_redist.exe"
        artifact = self._fetcher.download(url, cancel=self._cancel, file_name=file_name)
        command = [str(artifact.path), *VC_REDIST_ARGUMENTS]
        _LOGGER.info("Running redistributable installer %s", artifact.path)
        popen_kwargs: dict[str, Any] = {}
        if os.name == "nt":  # pragma: no cover - exercised on Windows
            creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)
            if creationflags:
                popen_kwargs["creationflags"] = creationflags
        try:
            completed = subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self._timeout,
                check=False,
                **popen_kwargs,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise PrerequisiteUnsatisfied(
                PrerequisiteFailure(
                    PrerequisiteFailureKind.MISSING_REDISTRIBUTABLE,
                    f"could not run the redistributable installer: {exc}",
                    url=url,
                )
            ) from exc
        finally:
            artifact.discard()

        if completed.returncode not in VC_REDIST_SUCCESS_CODES:
            raise PrerequisiteUnsatisfied(
                PrerequisiteFailure(
                    PrerequisiteFailureKind.MISSING_REDISTRIBUTABLE,
                    f"the redistributable installer exited with code {completed.returncode}",
                    url=url,
                )
            )
        _LOGGER.info("Redistributable installer finished with code %s", completed.returncode)
