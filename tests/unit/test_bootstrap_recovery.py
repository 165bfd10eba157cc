from __future__ import annotations

import json
from pathlib import Path

import pytest

from services.bootstrap.models import LocalInstallState
from services.bootstrap.recovery import recover_interrupted_install
from services.bootstrap.state import StateStore


def _tree(root: Path, marker: bytes) -> None:
    root.mkdir(parents=True)
    (root / "paradise.exe").write_bytes(marker)


def _journal(root: Path, version: str, had_previous: bool) -> Path:
    path = root.parent / f"{root.name}.promotion.json"
    path.write_text(json.dumps({"version": version, "had_previous": had_previous}), encoding="utf-8")
    return path


@pytest.fixture
def store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "state" / "bootstrap_state.json")


def test_clean_root_needs_no_recovery(tmp_path: Path, store: StateStore) -> None:
    root = tmp_path / "paradise"
    _tree(root, b"current")

    assert recover_interrupted_install(root, store) is False
    assert (root / "paradise.exe").read_bytes() == b"current"


def test_crash_after_backup_rename_restores_previous(tmp_path: Path, store: StateStore) -> None:
    root = tmp_path / "paradise"
    _tree(tmp_path / "paradise.backup", b"old")
    journal = _journal(root, "1.0.1", had_previous=True)
    store.save(LocalInstallState("1.0.0", root))

    assert recover_interrupted_install(root, store) is True

    assert (root / "paradise.exe").read_bytes() == b"old"
    assert not (tmp_path / "paradise.backup").exists()
    assert not journal.exists()


def test_crash_before_state_write_rolls_back(tmp_path: Path, store: StateStore) -> None:
    root = tmp_path / "paradise"
    _tree(root, b"new")
    _tree(tmp_path / "paradise.backup", b"old")
    journal = _journal(root, "1.0.1", had_previous=True)
    store.save(LocalInstallState("1.0.0", root))

    recover_interrupted_install(root, store)

    assert (root / "paradise.exe").read_bytes() == b"old"
    assert store.load(root).installed_version == "1.0.0"
    assert not journal.exists()
    assert sorted(path.name for path in tmp_path.iterdir()) == ["paradise", "state"]


def test_crash_after_state_write_commits(tmp_path: Path, store: StateStore) -> None:
    root = tmp_path / "paradise"
    _tree(root, b"new")
    _tree(tmp_path / "paradise.backup", b"old")
    journal = _journal(root, "1.0.1", had_previous=True)
    store.save(LocalInstallState("1.0.1", root))

    recover_interrupted_install(root, store)

    assert (root / "paradise.exe").read_bytes() == b"new"
    assert not (tmp_path / "paradise.backup").exists()
    assert not journal.exists()


def test_interrupted_first_install_is_removed(tmp_path: Path, store: StateStore) -> None:
    root = tmp_path / "paradise"
    _tree(root, b"new")
    _journal(root, "1.0.1", had_previous=False)

    recover_interrupted_install(root, store)

    assert not root.exists()
    assert not (tmp_path / "paradise.discard").exists()


def test_leftover_staging_and_discard_directories_are_removed(
    tmp_path: Path, store: StateStore
) -> None:
    root = tmp_path / "paradise"
    _tree(root, b"current")
    _tree(tmp_path / "paradise.staging-abc123", b"partial")
    _tree(tmp_path / "paradise.discard", b"half deleted")
    (tmp_path / "paradise.lock").write_text("{}", encoding="utf-8")

    assert recover_interrupted_install(root, store) is True

    assert sorted(path.name for path in tmp_path.iterdir()) == ["paradise", "paradise.lock"]
    assert (root / "paradise.exe").read_bytes() == b"current"


def test_orphaned_backup_without_root_is_restored(tmp_path: Path, store: StateStore) -> None:
    root = tmp_path / "paradise"
    _tree(tmp_path / "paradise.backup", b"old")

    assert recover_interrupted_install(root, store) is True
    assert (root / "paradise.exe").read_bytes() == b"old"
