from __future__ import annotations

from pathlib import Path

import pytest

import app.version as version_module
from app.version import get_bootstrapper_version


@pytest.fixture(autouse=True)
def _reset_cache():
    get_bootstrapper_version.cache_clear()  # type: ignore[attr-defined]
    yield
    get_bootstrapper_version.cache_clear()  # type: ignore[attr-defined]


def test_get_bootstrapper_version_prefers_environment(monkeypatch) -> None:
    monkeypatch.setenv("PARADISE_BOOTSTRAPPER_VERSION", "v1.2.3")

    assert get_bootstrapper_version() == "1.2.3"


def test_get_bootstrapper_version_falls_back_to_version_file(monkeypatch) -> None:
    monkeypatch.delenv("PARADISE_BOOTSTRAPPER_VERSION", raising=False)

    version_file = Path(version_module.__file__).with_name("VERSION")
    expected = version_file.read_text(encoding="utf-8").strip()
    assert expected
    assert get_bootstrapper_version() == expected


def test_user_agent_carries_bootstrapper_version(monkeypatch) -> None:
    from services.bootstrap import transport

    monkeypatch.setenv("PARADISE_BOOTSTRAPPER_VERSION", "4.5.6")
    captured = {}

    def fake_urlopen(request, timeout=None, context=None):
        captured["agent"] = request.get_header("User-agent")
        captured["timeout"] = timeout
        return None

    monkeypatch.setattr(transport, "urlopen", fake_urlopen)
    monkeypatch.setattr(transport, "build_ssl_context", lambda: None)

    transport.open_url("https://example.com/installer.json", timeout=12.5)

    assert captured == {"agent": "ParadiseBootstrapper/4.5.6", "timeout": 12.5}


def _untraversable(package):
    raise NotADirectoryError("MultiplexedPath only supports directories")


def test_version_file_is_read_when_package_resources_fail(monkeypatch) -> None:
    monkeypatch.delenv("PARADISE_BOOTSTRAPPER_VERSION", raising=False)
    monkeypatch.setattr(version_module.resources, "files", _untraversable)

    expected = Path(version_module.__file__).with_name("VERSION").read_text(encoding="utf-8").strip()
    assert get_bootstrapper_version() == expected


def test_placeholder_version_when_nothing_is_readable(monkeypatch) -> None:
    monkeypatch.delenv("PARADISE_BOOTSTRAPPER_VERSION", raising=False)
    monkeypatch.setattr(version_module.resources, "files", _untraversable)
    monkeypatch.setattr(version_module, "__file__", "/nonexistent/app/version.py")

    assert get_bootstrapper_version() == "0.0.0-dev"
