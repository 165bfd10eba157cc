"""Retrieve and validate the remote release manifest."""

from __future__ import annotations

import json
import logging
from pathlib import PurePosixPath
from typing import Any, Iterable, Mapping
from urllib.parse import urlparse

from services.bootstrap import transport
from services.bootstrap.constants import ALLOWED_URL_SCHEMES, MAX_MANIFEST_BYTES
from services.bootstrap.errors import ManifestMalformed, ManifestUnreachable
from services.bootstrap.hashing import is_sha256_hex
from services.bootstrap.models import ManifestFile, Prerequisites, ReleaseManifest, VcRedist
from services.bootstrap.versioning import parse_version


_LOGGER = logging.getLogger(__name__)

__all__ = ["ManifestClient", "parse_manifest"]


class ManifestClient:
    """Fetch the manifest over HTTP(S) and turn it into a :class:`ReleaseManifest`.

    The client never retries; callers own any retry policy.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        allowed_schemes: Iterable[str] = ALLOWED_URL_SCHEMES,
    ) -> None:
        self._timeout = timeout
        self._allowed_schemes = tuple(allowed_schemes)

    def fetch(self, url: str) -> ReleaseManifest:
        _LOGGER.info("Fetching manifest from %s", url)
        raw = self._read(url)
        try:
            data = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise ManifestMalformed(f"body is not UTF-8 ({exc})") from exc
        except json.JSONDecodeError as exc:
            raise ManifestMalformed(f"invalid JSON ({exc})") from exc

        manifest = parse_manifest(data, allowed_schemes=self._allowed_schemes)
        _LOGGER.info("Manifest validated successfully: version %s", manifest.version)
        return manifest

    def _read(self, url: str) -> bytes:
        try:
            with transport.open_url(url, timeout=self._timeout, accept="application/json") as response:
                raw = response.read(MAX_MANIFEST_BYTES + 1)
        except transport.TRANSPORT_ERRORS as exc:
            _LOGGER.warning("Manifest request to %s failed: %s", url, exc)
            raise ManifestUnreachable(url, str(exc)) from exc
        if len(raw) > MAX_MANIFEST_BYTES:
            raise ManifestMalformed(f"body exceeds {MAX_MANIFEST_BYTES} bytes")
        _LOGGER.debug("Received %s manifest bytes from %s", len(raw), url)
        return raw


def parse_manifest(
    data: Any, *, allowed_schemes: Iterable[str] = ALLOWED_URL_SCHEMES
) -> ReleaseManifest:
    """Validate decoded manifest JSON, raising :class:`ManifestMalformed` on any defect."""

    schemes = tuple(allowed_schemes)
    if not isinstance(data, Mapping):
        raise ManifestMalformed("top level must be a JSON object")

    version = _require_text(data, "version")
    if parse_version(version) is None:
        raise ManifestMalformed(f"version {version!r} is not a comparable version")

    release_zip_url = _require_url(data, "release_zip_url", schemes)

    sha256 = data.get("sha256")
    if not is_sha256_hex(sha256):
        raise ManifestMalformed("sha256 must be a 64 character hexadecimal digest")

    files = _parse_files(data.get("files"))
    prerequisites = _parse_prerequisites(data.get("prerequisites"), schemes)

    license_check_url: str | None = None
    if data.get("license_check_url") is not None:
        license_check_url = _require_url(data, "license_check_url", schemes)

    return ReleaseManifest(
        version=version,
        release_zip_url=release_zip_url,
        sha256=sha256.lower(),
        files=files,
        prerequisites=prerequisites,
        license_check_url=license_check_url,
    )


def _require_text(section: Mapping[str, Any], key: str, *, where: str = "") -> str:
    value = section.get(key)
    label = f"{where}{key}"
    if value is None:
        raise ManifestMalformed(f"missing field {label!r}")
    if not isinstance(value, str):
        raise ManifestMalformed(f"field {label!r} must be a string")
    cleaned = value.strip()
    if not cleaned:
        raise ManifestMalformed(f"field {label!r} is empty")
    return cleaned


def _require_url(
    section: Mapping[str, Any], key: str, schemes: tuple[str, ...], *, where: str = ""
) -> str:
    value = _require_text(section, key, where=where)
    parsed = urlparse(value)
    scheme = parsed.scheme.lower()
    has_location = bool(parsed.netloc) if scheme in ("http", "https") else bool(parsed.path)
    if scheme not in schemes or not has_location:
        raise ManifestMalformed(f"field {where}{key!s} is not a supported URL: {value!r}")
    return value


def _parse_files(raw: Any) -> tuple[ManifestFile, ...]:
    if raw is None:
        raise ManifestMalformed("missing field 'files'")
    if not isinstance(raw, list):
        raise ManifestMalformed("field 'files' must be an array")
    if not raw:
        raise ManifestMalformed("files list is empty")

    entries: list[ManifestFile] = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ManifestMalformed(f"files[{index}] must be an object")
        name = _require_text(item, "name", where=f"files[{index}].")
        if not _is_safe_relative_name(name):
            raise ManifestMalformed(f"files[{index}].name {name!r} is not a relative path")
        entries.append(ManifestFile(name=name))
    return tuple(entries)


def _is_safe_relative_name(name: str) -> bool:
    normalised = name.replace("\\", "/")
    path = PurePosixPath(normalised)
    if path.is_absolute() or ":" in normalised:
        return False
    return all(part not in ("", "..") for part in normalised.strip("/").split("/"))


def _parse_prerequisites(raw: Any, schemes: tuple[str, ...]) -> Prerequisites:
    if raw is None:
        return Prerequisites()
    if not isinstance(raw, Mapping):
        raise ManifestMalformed("field 'prerequisites' must be an object")

    windows_version_min: str | None = None
    if raw.get("windows_version_min") is not None:
        windows_version_min = _require_text(
            raw, "windows_version_min", where="prerequisites."
        )
        if parse_version(windows_version_min) is None:
            raise ManifestMalformed(
                f"prerequisites.windows_version_min {windows_version_min!r} is not a version"
            )

    vc_redist: VcRedist | None = None
    raw_redist = raw.get("vc_redist")
    if raw_redist is not None:
        if not isinstance(raw_redist, Mapping):
            raise ManifestMalformed("field 'prerequisites.vc_redist' must be an object")
        required = raw_redist.get("required")
        if not isinstance(required, bool):
            raise ManifestMalformed("field 'prerequisites.vc_redist.required' must be a boolean")
        url = _require_url(raw_redist, "url", schemes, where="prerequisites.vc_redist.")
        vc_redist = VcRedist(required=required, url=url)

    return Prerequisites(windows_version_min=windows_version_min, vc_redist=vc_redist)
