"""Single-instance lock guarding an install root."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from types import TracebackType

import psutil

from services.bootstrap.constants import LOCK_SUFFIX
from services.bootstrap.errors import InstallFailed, InstallLocked


_LOGGER = logging.getLogger(__name__)

_UNREADABLE_LOCK_GRACE_SECONDS = 10.0

__all__ = ["InstallLock", "lock_path_for"]


def lock_path_for(install_root: Path) -> Path:
    """The lockfile lives beside the root so promotion never moves it."""

    return install_root.parent / f"{install_root.name}{LOCK_SUFFIX}"


class InstallLock:
    """Exclusive lockfile created with ``O_CREAT | O_EXCL``.

    A lockfile whose recorded pid is no longer running is considered stale and
    is replaced once.
    """

    def __init__(self, install_root: Path) -> None:
        self._install_root = Path(install_root)
        self._path = lock_path_for(self._install_root)
        self._fd: int | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise InstallFailed(f"cannot create {self._path.parent}: {exc}") from exc

        for attempt in range(2):
            try:
                self._fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            except FileExistsError:
                owner = self._read_owner()
                if attempt == 0 and self._is_stale(owner):
                    _LOGGER.warning("Removing stale install lock %s (pid=%s)", self._path, owner)
                    self._path.unlink(missing_ok=True)
                    continue
                raise InstallLocked(str(self._path), owner)
            except OSError as exc:
                raise InstallFailed(f"cannot create lock {self._path}: {exc}") from exc
            break

        payload = json.dumps({"pid": os.getpid(), "timestamp": time.time()})
        try:
            os.write(self._fd, payload.encode("utf-8"))
            os.fsync(self._fd)
        except OSError as exc:
            os.close(self._fd)
            self._fd = None
            self._path.unlink(missing_ok=True)
            raise InstallFailed(f"cannot write lock {self._path}: {exc}") from exc
        _LOGGER.debug("Acquired install lock %s", self._path)

    def release(self) -> None:
        if self._fd is None:
            return
        os.close(self._fd)
        self._fd = None
        self._path.unlink(missing_ok=True)
        _LOGGER.debug("Released install lock %s", self._path)

    def _is_stale(self, owner: int | None) -> bool:
        if owner is not None:
            return not psutil.pid_exists(owner)
        # Unreadable lockfiles may belong to a process still writing its pid.
        try:
            age = time.time() - self._path.stat().st_mtime
        except FileNotFoundError:
            return True
        return age > _UNREADABLE_LOCK_GRACE_SECONDS

    def _read_owner(self) -> int | None:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        pid = payload.get("pid") if isinstance(payload, dict) else None
        if isinstance(pid, int) and not isinstance(pid, bool) and pid > 0:
            return pid
        return None

    def __enter__(self) -> "InstallLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
