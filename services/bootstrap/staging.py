"""Extract verified releases beside the install root and promote them by rename.

Promotion is best-effort atomic: the previous install is renamed to a
``.backup`` sibling and the staging directory is renamed into its place.  Both
directories share a parent, so on common filesystems each step is a single
directory-entry rename.  A small JSON journal written before the first rename
lets :mod:`services.bootstrap.recovery` finish or undo a promotion that was
interrupted by a crash.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from services.bootstrap.archive import extract_archive, find_missing_files
from services.bootstrap.constants import (
    BACKUP_SUFFIX,
    DISCARD_SUFFIX,
    JOURNAL_SUFFIX,
    STAGING_SUFFIX,
)
from services.bootstrap.errors import BootstrapError, IncompleteArchive, InstallFailed
from services.bootstrap.models import (
    InstallPhase,
    LocalInstallState,
    ReleaseManifest,
    VerifiedArtifact,
)
from services.bootstrap.state import StateStore


_LOGGER = logging.getLogger(__name__)

__all__ = [
    "PromotionJournal",
    "PromotionPaths",
    "StagedInstaller",
    "promotion_paths",
    "read_journal",
    "roll_back_promotion",
    "commit_promotion",
]


@dataclass(frozen=True)
class PromotionPaths:
    install_root: Path
    backup: Path
    discard: Path
    journal: Path
    staging_glob: str


def promotion_paths(install_root: Path) -> PromotionPaths:
    root = Path(install_root)
    parent = root.parent
    return PromotionPaths(
        install_root=root,
        backup=parent / f"{root.name}{BACKUP_SUFFIX}",
        discard=parent / f"{root.name}{DISCARD_SUFFIX}",
        journal=parent / f"{root.name}{JOURNAL_SUFFIX}",
        staging_glob=f"{root.name}{STAGING_SUFFIX}*",
    )


@dataclass(frozen=True)
class PromotionJournal:
    version: str
    had_previous: bool


def _write_journal(paths: PromotionPaths, journal: PromotionJournal) -> None:
    payload = {"version": journal.version, "had_previous": journal.had_previous}
    paths.journal.write_text(json.dumps(payload), encoding="utf-8")


def read_journal(paths: PromotionPaths) -> PromotionJournal | None:
    if not paths.journal.exists():
        return None
    try:
        payload = json.loads(paths.journal.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        _LOGGER.warning("Promotion journal %s is unreadable", paths.journal, exc_info=True)
        return PromotionJournal(version="", had_previous=paths.backup.exists())
    version = payload.get("version") if isinstance(payload, dict) else None
    had_previous = payload.get("had_previous") if isinstance(payload, dict) else None
    return PromotionJournal(
        version=version if isinstance(version, str) else "",
        had_previous=bool(had_previous) if isinstance(had_previous, bool) else paths.backup.exists(),
    )


def _remove_tree(path: Path, discard: Path) -> None:
    """Rename ``path`` aside before deleting it so no half-deleted tree keeps its name."""

    if not path.exists():
        return
    if discard.exists():
        shutil.rmtree(discard)
    path.rename(discard)
    shutil.rmtree(discard)


def roll_back_promotion(paths: PromotionPaths, journal: PromotionJournal) -> None:
    """Put the pre-promotion install back in place and drop the journal."""

    if paths.backup.exists():
        _LOGGER.warning("Restoring previous install from %s", paths.backup)
        _remove_tree(paths.install_root, paths.discard)
        paths.backup.rename(paths.install_root)
    elif not journal.had_previous:
        # There was nothing before; anything at the root is the new release.
        _remove_tree(paths.install_root, paths.discard)
    paths.journal.unlink(missing_ok=True)


def commit_promotion(paths: PromotionPaths) -> None:
    """Drop the backup of the previous install and the journal."""

    if paths.backup.exists():
        shutil.rmtree(paths.backup)
    paths.journal.unlink(missing_ok=True)


class StagedInstaller:
    """Install a verified release archive into ``LocalInstallState.install_root``."""

    def __init__(self, state_store: StateStore) -> None:
        self._state_store = state_store
        self.history: list[InstallPhase] = [InstallPhase.IDLE]

    @property
    def phase(self) -> InstallPhase:
        return self.history[-1]

    def _enter(self, phase: InstallPhase) -> None:
        _LOGGER.debug("Installer phase %s -> %s", self.phase.value, phase.value)
        self.history.append(phase)

    def install(
        self,
        artifact: VerifiedArtifact,
        manifest: ReleaseManifest,
        state: LocalInstallState,
    ) -> LocalInstallState:
        install_root = state.install_root
        paths = promotion_paths(install_root)
        _LOGGER.info("Installing version %s to %s", manifest.version, install_root)
        self._enter(InstallPhase.STAGING)

        staging: Path | None = None
        try:
            install_root.parent.mkdir(parents=True, exist_ok=True)
            staging = Path(
                tempfile.mkdtemp(
                    prefix=f"{install_root.name}{STAGING_SUFFIX}", dir=install_root.parent
                )
            )
            extract_archive(artifact.path, staging)
            missing = find_missing_files(staging, manifest.file_names)
            if missing:
                raise IncompleteArchive(missing)
            self._enter(InstallPhase.VERIFIED_COMPLETE)

            self._enter(InstallPhase.PROMOTING)
            self._promote(staging, paths, manifest.version)
            staging = None
        except BootstrapError:
            self._fail()
            raise
        except OSError as exc:
            self._fail()
            raise InstallFailed(str(exc)) from exc
        finally:
            if staging is not None:
                shutil.rmtree(staging, ignore_errors=True)
            artifact.discard()

        new_state = state.with_version(manifest.version)
        try:
            self._state_store.save(new_state)
        except OSError as exc:
            _LOGGER.error("Could not record install state; rolling back promotion")
            try:
                roll_back_promotion(
                    paths, PromotionJournal(manifest.version, paths.backup.exists())
                )
            except OSError:
                _LOGGER.exception("Rollback incomplete; it will be finished on the next run")
            self._fail()
            raise InstallFailed(f"could not record install state: {exc}") from exc

        try:
            commit_promotion(paths)
        except OSError:
            # The new release is live and recorded; recovery removes the leftovers next run.
            _LOGGER.warning("Could not remove previous install backup", exc_info=True)
        self._enter(InstallPhase.INSTALLED)
        _LOGGER.info("Installation of version %s completed successfully", manifest.version)
        return new_state

    def _promote(self, staging: Path, paths: PromotionPaths, version: str) -> None:
        install_root = paths.install_root
        had_previous = install_root.exists()
        if paths.backup.exists():
            shutil.rmtree(paths.backup)
        journal = PromotionJournal(version=version, had_previous=had_previous)
        _write_journal(paths, journal)

        try:
            if had_previous:
                _LOGGER.info("Backing up existing installation to %s", paths.backup)
                install_root.rename(paths.backup)
            staging.rename(install_root)
        except BaseException:
            _LOGGER.error("Promotion of %s failed; restoring previous state", staging)
            roll_back_promotion(paths, journal)
            raise
        _LOGGER.info("Promoted staged release into %s", install_root)

    def _fail(self) -> None:
        self._enter(InstallPhase.FAILED)
        self._enter(InstallPhase.IDLE)
