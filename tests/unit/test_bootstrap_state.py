from __future__ import annotations

import json
from pathlib import Path

from services.bootstrap.models import LocalInstallState
from services.bootstrap.state import StateStore


def test_missing_state_file_means_not_installed(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state.json")

    state = store.load(tmp_path / "app")

    assert state == LocalInstallState(installed_version=None, install_root=tmp_path / "app")


def test_save_then_load_preserves_state(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "nested" / "state.json")
    root = tmp_path / "custom-root"

    store.save(LocalInstallState(installed_version="1.0.1", install_root=root))

    assert store.load(tmp_path / "default") == LocalInstallState("1.0.1", root)
    assert json.loads(store.path.read_text(encoding="utf-8")) == {
        "installed_version": "1.0.1",
        "install_root": str(root),
    }
    assert [path.name for path in store.path.parent.iterdir()] == ["state.json"]


def test_corrupt_state_file_is_treated_as_not_installed(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{broken", encoding="utf-8")

    state = StateStore(path).load(tmp_path / "app")

    assert state.installed_version is None
    assert state.install_root == tmp_path / "app"


def test_state_only_applies_to_existing_recorded_root(tmp_path: Path) -> None:
    root = tmp_path / "app"
    state = LocalInstallState(installed_version="1.0.0", install_root=root)

    assert state.for_root(root).installed_version is None
    root.mkdir()
    assert state.for_root(root).installed_version == "1.0.0"
    assert state.for_root(tmp_path / "elsewhere").installed_version is None
