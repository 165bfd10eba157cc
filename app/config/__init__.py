"""Bootstrapper configuration loaded from JSON resources and the environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

_CONFIG_RESOURCE = "bootstrap.json"
_BOOTSTRAP_CONFIG_CACHE: BootstrapConfig | None = None

MANIFEST_URL_ENV = "PARADISE_MANIFEST_URL"
INSTALL_ROOT_ENV = "PARADISE_INSTALL_ROOT"
STATE_FILE_ENV = "PARADISE_STATE_FILE"

DEFAULT_MANIFEST_URL = (
    "https://raw.githubusercontent.com/syringeefy/Xenith/refs/heads/main/installer.json"
)
_DATA_DIRNAME = "paradise"
_DEFAULT_MANIFEST_TIMEOUT = 30.0
_DEFAULT_DOWNLOAD_TIMEOUT = 180.0
_DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class BootstrapConfig:
    """Structured configuration values for a bootstrapper run."""

    manifest_url: str
    install_root: Path
    state_path: Path
    log_dir: Path
    manifest_timeout: float = _DEFAULT_MANIFEST_TIMEOUT
    download_timeout: float = _DEFAULT_DOWNLOAD_TIMEOUT
    chunk_size: int = _DEFAULT_CHUNK_SIZE


def default_data_dir() -> Path:
    """Return the per-user data directory (``%LOCALAPPDATA%\\paradise`` on Windows)."""

    local_app_data = os.environ.get("LOCALAPPDATA")
    if local_app_data:
        return Path(local_app_data) / _DATA_DIRNAME
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data) / _DATA_DIRNAME
    return Path.home() / ".local" / "share" / _DATA_DIRNAME


def get_bootstrap_config() -> BootstrapConfig:
    """Return the cached bootstrapper configuration."""

    global _BOOTSTRAP_CONFIG_CACHE
    if _BOOTSTRAP_CONFIG_CACHE is None:
        _BOOTSTRAP_CONFIG_CACHE = load_bootstrap_config()
    return _BOOTSTRAP_CONFIG_CACHE


def reset_bootstrap_config_cache() -> None:
    global _BOOTSTRAP_CONFIG_CACHE
    _BOOTSTRAP_CONFIG_CACHE = None


def load_bootstrap_config(path: str | Path | None = None) -> BootstrapConfig:
    """Load configuration from ``path`` or the bundled JSON resource.

    Environment variables take precedence over file values, and invalid file
    values fall back to the built-in defaults.
    """

    data = _read_config_data(path)
    data_dir = default_data_dir()

    manifest_section = data.get("manifest") if isinstance(data, Mapping) else None
    network_section = data.get("network") if isinstance(data, Mapping) else None
    paths_section = data.get("paths") if isinstance(data, Mapping) else None
    if not isinstance(manifest_section, Mapping):
        manifest_section = {}
    if not isinstance(network_section, Mapping):
        network_section = {}
    if not isinstance(paths_section, Mapping):
        paths_section = {}

    manifest_url = os.environ.get(MANIFEST_URL_ENV) or _coerce_text(
        manifest_section.get("url"), default=DEFAULT_MANIFEST_URL
    )
    install_root = _env_path(INSTALL_ROOT_ENV) or _coerce_path(
        paths_section.get("install_root"), default=data_dir / "appfolder"
    )
    state_path = _env_path(STATE_FILE_ENV) or _coerce_path(
        paths_section.get("state_file"), default=data_dir / "bootstrap_state.json"
    )
    log_dir = _coerce_path(paths_section.get("log_dir"), default=data_dir / "logs")

    return BootstrapConfig(
        manifest_url=manifest_url,
        install_root=install_root,
        state_path=state_path,
        log_dir=log_dir,
        manifest_timeout=_coerce_positive_float(
            network_section.get("manifest_timeout"), default=_DEFAULT_MANIFEST_TIMEOUT
        ),
        download_timeout=_coerce_positive_float(
            network_section.get("download_timeout"), default=_DEFAULT_DOWNLOAD_TIMEOUT
        ),
        chunk_size=_coerce_positive_int(
            network_section.get("chunk_size"), default=_DEFAULT_CHUNK_SIZE
        ),
    )


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    return Path(value).expanduser()


def _coerce_text(value: Any, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _coerce_path(value: Any, *, default: Path) -> Path:
    if isinstance(value, str) and value.strip():
        return Path(os.path.expandvars(value.strip())).expanduser()
    return default


def _coerce_positive_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = int(value)
    elif isinstance(value, str):
        try:
            candidate = int(float(value))
        except ValueError:
            return default
    else:
        return default
    if candidate <= 0:
        return default
    return candidate


def _coerce_positive_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate <= 0:
        return default
    return candidate


__all__ = [
    "BootstrapConfig",
    "DEFAULT_MANIFEST_URL",
    "INSTALL_ROOT_ENV",
    "MANIFEST_URL_ENV",
    "STATE_FILE_ENV",
    "default_data_dir",
    "get_bootstrap_config",
    "load_bootstrap_config",
    "reset_bootstrap_config_cache",
]
