"""Persistence for :class:`LocalInstallState`."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from services.bootstrap.models import LocalInstallState


_LOGGER = logging.getLogger(__name__)

__all__ = ["StateStore"]


class StateStore:
    """Read and atomically replace the small JSON record of the last install.

    Only the staged installer calls :meth:`save`, and only after a successful
    promotion.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self, default_root: Path) -> LocalInstallState:
        """Return the recorded state, or a never-installed state for ``default_root``."""

        if not self._path.exists():
            _LOGGER.debug("No install state recorded at %s", self._path)
            return LocalInstallState(installed_version=None, install_root=Path(default_root))

        try:
            payload = json.loads(self._path.read_text(encoding="utf-8-sig"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError):
            _LOGGER.warning(
                "Unable to parse install state at %s; treating as not installed",
                self._path,
                exc_info=True,
            )
            return LocalInstallState(installed_version=None, install_root=Path(default_root))

        if not isinstance(payload, dict):
            payload = {}
        version = _coerce_text(payload.get("installed_version"))
        root_text = _coerce_text(payload.get("install_root"))
        install_root = Path(root_text) if root_text else Path(default_root)
        _LOGGER.info("Loaded install state: version=%s root=%s", version, install_root)
        return LocalInstallState(installed_version=version, install_root=install_root)

    def save(self, state: LocalInstallState) -> None:
        """Write ``state`` via a temporary file and ``os.replace``."""

        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "installed_version": state.installed_version,
            "install_root": str(state.install_root),
        }
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, self._path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
        _LOGGER.info(
            "Recorded install state: version=%s root=%s",
            state.installed_version,
            state.install_root,
        )


def _coerce_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
