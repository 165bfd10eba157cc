"""Finish or undo install attempts that were interrupted by a crash."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from services.bootstrap.errors import InstallFailed
from services.bootstrap.models import same_path
from services.bootstrap.staging import (
    commit_promotion,
    promotion_paths,
    read_journal,
    roll_back_promotion,
)
from services.bootstrap.state import StateStore

_LOGGER = logging.getLogger(__name__)


def recover_interrupted_install(install_root: Path, state_store: StateStore) -> bool:
    """Bring ``install_root`` back to a consistent state.

    A promotion counts as complete once the recorded state names the
    journal's version for this root; anything short of that is rolled back
    to the previous install.  Leftover staging directories are always
    removed.  Must be called while holding the install lock.  Returns
    ``True`` when anything had to be cleaned up.
    """

    paths = promotion_paths(install_root)
    recovered = False
    try:
        journal = read_journal(paths)
        if journal is not None:
            state = state_store.load(paths.install_root)
            committed = (
                bool(journal.version)
                and state.installed_version == journal.version
                and same_path(state.install_root, paths.install_root)
                and paths.install_root.is_dir()
            )
            if committed:
                _LOGGER.info("Completing interrupted promotion of version %s", journal.version)
                commit_promotion(paths)
            else:
                _LOGGER.warning(
                    "Rolling back interrupted promotion of version %s", journal.version or "?"
                )
                roll_back_promotion(paths, journal)
            recovered = True
        elif paths.backup.exists() and not paths.install_root.exists():
            _LOGGER.warning("Restoring orphaned backup %s", paths.backup)
            paths.backup.rename(paths.install_root)
            recovered = True

        if paths.discard.exists():
            shutil.rmtree(paths.discard)
            recovered = True
        for leftover in sorted(paths.install_root.parent.glob(paths.staging_glob)):
            _LOGGER.info("Removing leftover staging directory %s", leftover)
            shutil.rmtree(leftover)
            recovered = True
    except OSError as exc:
        raise InstallFailed(f"could not recover interrupted install: {exc}") from exc
    return recovered


__all__ = ["recover_interrupted_install"]
