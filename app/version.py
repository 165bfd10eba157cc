from __future__ import annotations

"""Bootstrapper version helpers."""

from functools import lru_cache
import os
from importlib import resources
from pathlib import Path

_FALLBACK_VERSION = "0.0.0-dev"
_VERSION_ENV = "PARADISE_BOOTSTRAPPER_VERSION"


def _read_version_file() -> str | None:
    try:
        text = resources.files(__package__).joinpath("VERSION").read_text(encoding="utf-8")
    except (OSError, ModuleNotFoundError, TypeError):
        # Namespace packages under editable installs cannot always be traversed.
        try:
            text = Path(__file__).with_name("VERSION").read_text(encoding="utf-8")
        except OSError:
            return None
    version = text.strip()
    return version or None


def _version_from_env() -> str | None:
    env_version = os.environ.get(_VERSION_ENV)
    if not env_version:
        return None
    return _normalize(env_version)


def _normalize(raw_version: str) -> str:
    version = raw_version.strip()
    if version.startswith("v"):
        version = version[1:]
    return version


@lru_cache(maxsize=1)
def get_bootstrapper_version() -> str:
    """Return the bootstrapper's own version.

    ``PARADISE_BOOTSTRAPPER_VERSION`` wins over the embedded ``VERSION`` file;
    a development placeholder is returned when neither is available.
    """

    for resolver in (_version_from_env, _read_version_file):
        version = resolver()
        if version:
            return version
    return _FALLBACK_VERSION


__all__ = ["get_bootstrapper_version"]
