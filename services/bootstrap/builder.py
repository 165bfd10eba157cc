"""Helpers for constructing and running the bootstrap service."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Callable

from app.config import BootstrapConfig, get_bootstrap_config
from services.bootstrap.download import ArchiveFetcher
from services.bootstrap.errors import BootstrapError
from services.bootstrap.installers import RedistributableInstaller, WindowsRedistributableInstaller
from services.bootstrap.manifest import ManifestClient
from services.bootstrap.models import BootstrapOutcome, HostEnvironment
from services.bootstrap.prerequisites import detect_host
from services.bootstrap.service import BootstrapResult, BootstrapService
from services.bootstrap.state import StateStore
from shared.logging_config import ensure_bootstrap_logging


_LOGGER = logging.getLogger(__name__)


def build_bootstrap_service(
    config: BootstrapConfig | None = None,
    *,
    host_provider: Callable[[], HostEnvironment] | None = None,
    remediator: RedistributableInstaller | None = None,
) -> BootstrapService:
    """Construct a :class:`BootstrapService` from ``config``.

    On Windows a missing VC++ runtime is installed automatically unless a
    different ``remediator`` is supplied.
    """

    config = config or get_bootstrap_config()
    cancel_event = threading.Event()
    fetcher = ArchiveFetcher(timeout=config.download_timeout, chunk_size=config.chunk_size)
    if remediator is None and sys.platform.startswith("win"):
        remediator = WindowsRedistributableInstaller(
            ArchiveFetcher(timeout=config.download_timeout, chunk_size=config.chunk_size),
            cancel=cancel_event,
        )

    _LOGGER.debug(
        "Building bootstrap service (manifest=%s, default root=%s, state=%s)",
        config.manifest_url,
        config.install_root,
        config.state_path,
    )
    return BootstrapService(
        ManifestClient(timeout=config.manifest_timeout),
        fetcher,
        StateStore(config.state_path),
        manifest_url=config.manifest_url,
        default_install_root=config.install_root,
        host_provider=host_provider or detect_host,
        remediator=remediator,
        cancel_event=cancel_event,
    )


def run_bootstrap(
    install_root: Path | None = None,
    *,
    dry_run: bool = False,
    config: BootstrapConfig | None = None,
) -> BootstrapResult:
    """Configure logging, build the service and run it once."""

    config = config or get_bootstrap_config()
    ensure_bootstrap_logging(config.log_dir)
    _LOGGER.info("Paradise bootstrapper starting")
    _LOGGER.info("Manifest URL: %s", config.manifest_url)
    service = build_bootstrap_service(config)
    return service.run(install_root, dry_run=dry_run)


def _run_in_background(
    service: BootstrapService,
    install_root: Path | None,
    on_success: Callable[[BootstrapOutcome], None] | None,
    on_failure: Callable[[BootstrapError], None] | None,
    on_complete: Callable[[], None] | None,
) -> None:
    try:
        result = service.run(install_root)
        if result.is_ok():
            if on_success is not None:
                on_success(result.unwrap())
        elif on_failure is not None:
            on_failure(result.unwrap_err())
    except Exception:  # pragma: no cover
        _LOGGER.exception("Unexpected error while running the bootstrapper")
    finally:
        if on_complete is not None:
            on_complete()


def start_bootstrap_in_background(
    install_root: Path | None = None,
    *,
    service: BootstrapService | None = None,
    on_success: Callable[[BootstrapOutcome], None] | None = None,
    on_failure: Callable[[BootstrapError], None] | None = None,
    on_complete: Callable[[], None] | None = None,
) -> tuple[BootstrapService, threading.Thread]:
    """Run the pipeline on a daemon thread; the service can be cancelled."""

    service = service or build_bootstrap_service()
    thread = threading.Thread(
        target=_run_in_background,
        args=(service, install_root, on_success, on_failure, on_complete),
        name="paradise-bootstrap",
        daemon=True,
    )
    thread.start()
    return service, thread


__all__ = [
    "build_bootstrap_service",
    "run_bootstrap",
    "start_bootstrap_in_background",
]
