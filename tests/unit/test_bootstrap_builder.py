from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

import pytest

from app.config import BootstrapConfig
from services.bootstrap import builder
from services.bootstrap.builder import (
    build_bootstrap_service,
    run_bootstrap,
    start_bootstrap_in_background,
)
from services.bootstrap.models import OutcomeStatus
from shared import logging_config
from tests.unit.bootstrap_test_utils import (
    DEFAULT_FILES,
    MANIFEST_URL,
    RELEASE_URL,
    build_release_archive,
    install_fake_network,
    manifest_payload,
    sha256_hex,
    snapshot_tree,
    windows_host,
)


@pytest.fixture(autouse=True)
def reset_logging():
    logging_config._reset_for_tests()
    try:
        yield
    finally:
        logging_config._reset_for_tests()


@pytest.fixture
def config(tmp_path: Path) -> BootstrapConfig:
    return BootstrapConfig(
        manifest_url=MANIFEST_URL,
        install_root=tmp_path / "paradise",
        state_path=tmp_path / "state.json",
        log_dir=tmp_path / "logs",
        chunk_size=128,
    )


@pytest.fixture
def published(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    network = install_fake_network(monkeypatch)
    archive = build_release_archive(tmp_path)
    network.serve(
        MANIFEST_URL,
        json.dumps(manifest_payload(version="2.1.0", sha256=sha256_hex(archive))).encode("utf-8"),
    )
    network.serve(RELEASE_URL, archive)
    monkeypatch.setattr(builder, "detect_host", lambda: windows_host())


def test_run_bootstrap_installs_and_logs(
    config: BootstrapConfig, published: None, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("PARADISE_LOG_DIR", raising=False)

    result = run_bootstrap(config=config)

    assert result.unwrap().status is OutcomeStatus.INSTALLED
    assert snapshot_tree(config.install_root) == DEFAULT_FILES
    log_files = list((tmp_path / "logs").glob("bootstrapper_*.log"))
    assert len(log_files) == 1
    for handler in logging.getLogger().handlers:
        handler.flush()
    contents = log_files[0].read_text(encoding="utf-8")
    assert "Bootstrap finished: installed" in contents


def test_run_bootstrap_dry_run(config: BootstrapConfig, published: None) -> None:
    result = run_bootstrap(dry_run=True, config=config)

    assert result.unwrap().status is OutcomeStatus.DRY_RUN
    assert not config.install_root.exists()


def test_build_uses_default_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PARADISE_INSTALL_ROOT", str(tmp_path / "env-root"))

    service = build_bootstrap_service(host_provider=windows_host)

    assert service._default_install_root == tmp_path / "env-root"


def test_background_run_reports_success(config: BootstrapConfig, published: None) -> None:
    outcomes = []
    failures = []
    completed = threading.Event()

    service, thread = start_bootstrap_in_background(
        service=build_bootstrap_service(config),
        on_success=outcomes.append,
        on_failure=failures.append,
        on_complete=completed.set,
    )
    thread.join(timeout=10)

    assert completed.is_set()
    assert thread.daemon
    assert failures == []
    assert [outcome.status for outcome in outcomes] == [OutcomeStatus.INSTALLED]


def test_background_run_reports_failure(
    config: BootstrapConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    network = install_fake_network(monkeypatch)
    network.fail(MANIFEST_URL, ConnectionRefusedError("refused"))
    failures = []
    completed = threading.Event()

    _, thread = start_bootstrap_in_background(
        service=build_bootstrap_service(config, host_provider=windows_host),
        on_failure=failures.append,
        on_complete=completed.set,
    )
    thread.join(timeout=10)

    assert completed.is_set()
    assert len(failures) == 1
    assert failures[0].kind.value == "manifest_unreachable"
