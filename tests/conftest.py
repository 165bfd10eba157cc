from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    tests_dir = root / "tests"
    tests_str = str(tests_dir)
    if tests_str not in sys.path:
        sys.path.insert(1, tests_str)


_ensure_project_root_on_path()


@pytest.fixture(autouse=True)
def _isolated_user_data(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Route logs, state and default install paths away from real user data."""

    data_dir = tmp_path_factory.mktemp("user_data")
    monkeypatch.setenv("LOCALAPPDATA", str(data_dir))
    monkeypatch.setenv("PARADISE_LOG_DIR", str(data_dir / "logs"))
    for name in (
        "PARADISE_LOG_FILE",
        "PARADISE_MANIFEST_URL",
        "PARADISE_INSTALL_ROOT",
        "PARADISE_STATE_FILE",
        "PARADISE_CA_BUNDLE",
    ):
        monkeypatch.delenv(name, raising=False)

    from app.config import reset_bootstrap_config_cache

    reset_bootstrap_config_cache()
    yield
    reset_bootstrap_config_cache()
