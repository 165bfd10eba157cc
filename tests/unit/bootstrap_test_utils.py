from __future__ import annotations

import hashlib
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping
from zipfile import ZIP_DEFLATED, ZipFile

import pytest

from services.bootstrap import transport
from services.bootstrap.models import HostEnvironment

MANIFEST_URL = "https://updates.example.com/installer.json"
RELEASE_URL = "https://updates.example.com/release.zip"
REDIST_URL = "https://downloads.example.com/vc_redist.x64.exe"

DEFAULT_FILES: dict[str, bytes] = {
    "paradise.exe": b"MZ paradise launcher build 1",
    "lib/core.dll": b"core library contents 0123456789",
    "data/config.json": b'{"theme": "dark", "volume": 7}',
}


class FakeResponse(io.BytesIO):
    """Minimal stand-in for the object returned by ``urlopen``."""

    def __init__(self, body: bytes, headers: Mapping[str, str] | None = None) -> None:
        super().__init__(body)
        self.headers = dict(headers or {})


@dataclass
class FakeNetwork:
    """Route ``transport.urlopen`` calls to canned responses keyed by URL."""

    routes: dict[str, Callable[[], Any]] = field(default_factory=dict)
    requests: list[str] = field(default_factory=list)

    def serve(self, url: str, body: bytes, *, headers: Mapping[str, str] | None = None) -> None:
        self.routes[url] = lambda: FakeResponse(body, headers)

    def fail(self, url: str, error: BaseException) -> None:
        def _raise() -> Any:
            raise error

        self.routes[url] = _raise

    def respond_with(self, url: str, factory: Callable[[], Any]) -> None:
        self.routes[url] = factory

    def urlopen(self, request: Any, timeout: float | None = None, context: Any = None) -> Any:
        url = request.full_url
        self.requests.append(url)
        try:
            factory = self.routes[url]
        except KeyError:
            raise OSError(f"no route to {url}") from None
        return factory()

    def count(self, url: str) -> int:
        return self.requests.count(url)


def install_fake_network(monkeypatch: pytest.MonkeyPatch) -> FakeNetwork:
    network = FakeNetwork()
    monkeypatch.setattr(transport, "urlopen", network.urlopen)
    monkeypatch.setattr(transport, "build_ssl_context", lambda: None)
    return network


def build_release_archive(tmp_path: Path, files: Mapping[str, bytes] | None = None) -> bytes:
    entries = DEFAULT_FILES if files is None else files
    archive_path = tmp_path / "built-release.zip"
    with ZipFile(archive_path, "w", compression=ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    payload = archive_path.read_bytes()
    archive_path.unlink()
    return payload


def sha256_hex(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def manifest_payload(
    *,
    version: str = "1.0.1",
    sha256: str = "0" * 64,
    files: list[str] | None = None,
    release_zip_url: str = RELEASE_URL,
    prerequisites: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "version": version,
        "release_zip_url": release_zip_url,
        "sha256": sha256,
        "files": [{"name": name} for name in (files if files is not None else DEFAULT_FILES)],
    }
    if prerequisites is not None:
        payload["prerequisites"] = prerequisites
    return payload


def windows_host(version: str = "10.0.19045", *, has_vc_redist: bool = True) -> HostEnvironment:
    return HostEnvironment(os_name="windows", os_version=version, has_vc_redist=has_vc_redist)


class RecordingRemediator:
    def __init__(self, on_install: Callable[[], None] | None = None) -> None:
        self.urls: list[str] = []
        self._on_install = on_install

    def install(self, url: str) -> None:
        self.urls.append(url)
        if self._on_install is not None:
            self._on_install()


def snapshot_tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


__all__ = [
    "DEFAULT_FILES",
    "FakeNetwork",
    "FakeResponse",
    "MANIFEST_URL",
    "REDIST_URL",
    "RELEASE_URL",
    "RecordingRemediator",
    "build_release_archive",
    "install_fake_network",
    "manifest_payload",
    "sha256_hex",
    "snapshot_tree",
    "windows_host",
]
