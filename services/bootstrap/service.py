"""Orchestrate a single bootstrap run from manifest to promoted install."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable

from services.bootstrap.download import ArchiveFetcher, ProgressCallback
from services.bootstrap.errors import BootstrapError, PrerequisiteUnsatisfied, VersionUnknown
from services.bootstrap.hashing import verify_artifact
from services.bootstrap.installers import RedistributableInstaller
from services.bootstrap.locking import InstallLock
from services.bootstrap.manifest import ManifestClient
from services.bootstrap.messages import describe_failure
from services.bootstrap.models import (
    BootstrapOutcome,
    HostEnvironment,
    LocalInstallState,
    OutcomeStatus,
    PrerequisiteFailureKind,
    Prerequisites,
    ReleaseManifest,
    VersionComparison,
)
from services.bootstrap.prerequisites import check_prerequisites, detect_host
from services.bootstrap.recovery import recover_interrupted_install
from services.bootstrap.staging import StagedInstaller
from services.bootstrap.state import StateStore
from services.bootstrap.versioning import compare_versions
from shared.result import Result


_LOGGER = logging.getLogger(__name__)

BootstrapResult = Result[BootstrapOutcome, BootstrapError]


class BootstrapService:
    """Run the fail-closed pipeline: manifest, version, prerequisites,
    download, hash check, staged install.

    Every stage yields a :class:`Result`; the first error ends the run and is
    returned to the caller.  Nothing is retried here.
    """

    def __init__(
        self,
        manifest_client: ManifestClient,
        fetcher: ArchiveFetcher,
        state_store: StateStore,
        *,
        manifest_url: str,
        default_install_root: Path,
        host_provider: Callable[[], HostEnvironment] = detect_host,
        remediator: RedistributableInstaller | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._manifest_client = manifest_client
        self._fetcher = fetcher
        self._state_store = state_store
        self._manifest_url = manifest_url
        self._default_install_root = Path(default_install_root)
        self._host_provider = host_provider
        self._remediator = remediator
        self._cancel = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Ask an in-flight download to stop; the run then fails with ``DownloadIncomplete``."""

        _LOGGER.info("Cancellation requested")
        self._cancel.set()

    def run(
        self,
        install_root: Path | None = None,
        *,
        dry_run: bool = False,
        progress: ProgressCallback | None = None,
    ) -> BootstrapResult:
        self._cancel.clear()
        if install_root is None:
            install_root = self._state_store.load(self._default_install_root).install_root
        root = Path(install_root)
        _LOGGER.info("Bootstrap run starting for %s (dry_run=%s)", root, dry_run)

        if dry_run:
            result = self._execute(root, dry_run=True, progress=progress)
        else:
            lock = InstallLock(root)
            locked = self._stage(lock.acquire)
            if locked.is_err():
                result = Result.err(locked.unwrap_err())
            else:
                try:
                    result = self._execute(root, dry_run=False, progress=progress)
                finally:
                    lock.release()

        self._log_result(result)
        return result

    def _execute(
        self, root: Path, *, dry_run: bool, progress: ProgressCallback | None
    ) -> BootstrapResult:
        if not dry_run:
            recovered = self._stage(recover_interrupted_install, root, self._state_store)
            if recovered.is_err():
                return Result.err(recovered.unwrap_err())

        state = self._state_store.load(root).for_root(root)

        fetched = self._stage(self._manifest_client.fetch, self._manifest_url)
        if fetched.is_err():
            return Result.err(fetched.unwrap_err())
        manifest = fetched.unwrap()

        comparison = compare_versions(state.installed_version, manifest.version)
        if comparison is VersionComparison.UNKNOWN:
            return Result.err(VersionUnknown(state.installed_version, manifest.version))
        if comparison is VersionComparison.UP_TO_DATE:
            _LOGGER.info(
                "Installed version %s is up to date (release %s)",
                state.installed_version,
                manifest.version,
            )
            return Result.ok(
                BootstrapOutcome(OutcomeStatus.UP_TO_DATE, state.installed_version, root)
            )
        _LOGGER.info("Update available: %s -> %s", state.installed_version, manifest.version)

        gate = self._check_gate(manifest.prerequisites, remediate=not dry_run)
        if gate.is_err():
            return Result.err(gate.unwrap_err())

        if dry_run:
            _LOGGER.info("DRY RUN: would download %s", manifest.release_zip_url)
            _LOGGER.info("DRY RUN: would install to %s", root)
            return Result.ok(BootstrapOutcome(OutcomeStatus.DRY_RUN, manifest.version, root))

        return self._install(manifest, state, progress)

    def _install(
        self,
        manifest: ReleaseManifest,
        state: LocalInstallState,
        progress: ProgressCallback | None,
    ) -> BootstrapResult:
        installer = StagedInstaller(self._state_store)
        return (
            self._stage(
                self._fetcher.download,
                manifest.release_zip_url,
                progress=progress,
                cancel=self._cancel,
            )
            .and_then(lambda artifact: self._stage(verify_artifact, artifact, manifest.sha256))
            .and_then(lambda verified: self._stage(installer.install, verified, manifest, state))
            .and_then(
                lambda new_state: Result.ok(
                    BootstrapOutcome(
                        OutcomeStatus.INSTALLED,
                        new_state.installed_version,
                        new_state.install_root,
                    )
                )
            )
        )

    def _check_gate(self, prerequisites: Prerequisites, *, remediate: bool) -> Result[None, BootstrapError]:
        failure = check_prerequisites(prerequisites, self._host_provider()).failure
        if (
            failure is not None
            and failure.kind is PrerequisiteFailureKind.MISSING_REDISTRIBUTABLE
            and failure.url
            and remediate
            and self._remediator is not None
        ):
            _LOGGER.info("Attempting to install the missing redistributable from %s", failure.url)
            remediated = self._stage(self._remediator.install, failure.url)
            if remediated.is_err():
                return Result.err(remediated.unwrap_err())
            failure = check_prerequisites(prerequisites, self._host_provider()).failure

        if failure is not None:
            return Result.err(PrerequisiteUnsatisfied(failure))
        return Result.ok(None)

    @staticmethod
    def _stage(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Result[Any, BootstrapError]:
        return Result.capture(func, *args, errors=(BootstrapError,), **kwargs)

    def _log_result(self, result: BootstrapResult) -> None:
        if result.is_ok():
            outcome = result.unwrap()
            _LOGGER.info(
                "Bootstrap finished: %s (version=%s, root=%s)",
                outcome.status.value,
                outcome.version,
                outcome.install_root,
            )
            return
        error = result.unwrap_err()
        notice = describe_failure(error)
        _LOGGER.error("Bootstrap failed [%s]: %s", error.kind.value, notice.reason)
        _LOGGER.info("%s: %s", notice.title, notice.advice)


__all__ = ["BootstrapResult", "BootstrapService"]
