"""Archive extraction helpers for the staged installer."""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path
from typing import Iterable

from services.bootstrap import constants
from services.bootstrap.errors import InstallFailed


_LOGGER = logging.getLogger(__name__)

__all__ = ["extract_archive", "extract_zip_safely", "find_missing_files"]


def extract_archive(archive_path: Path, target_dir: Path) -> None:
    """Extract ``archive_path`` into the existing directory ``target_dir``."""

    _LOGGER.info("Extracting release archive %s to %s", archive_path, target_dir)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            extract_zip_safely(archive, target_dir)
    except (OSError, zipfile.BadZipFile) as exc:
        raise InstallFailed(f"could not extract release archive: {exc}") from exc


def extract_zip_safely(archive: zipfile.ZipFile, target_dir: Path) -> None:
    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    for member in archive.infolist():
        name = member.filename
        if not name:
            continue
        processed_entries += 1
        if processed_entries > constants.MAX_ARCHIVE_ENTRIES:
            _LOGGER.error(
                "Archive entry count %s exceeded limit %s",
                processed_entries,
                constants.MAX_ARCHIVE_ENTRIES,
            )
            raise InstallFailed("release archive contained too many entries")
        path = Path(name)
        if path.is_absolute() or name.startswith(("/", "\\")):
            raise InstallFailed(f"release archive contained an absolute path entry: {name}")
        destination = (root / path).resolve()
        try:
            destination.relative_to(root)
        except ValueError:
            raise InstallFailed(f"release archive contained an unsafe relative path: {name}")
        if member.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            continue
        if member.file_size > constants.MAX_ARCHIVE_FILE_SIZE:
            _LOGGER.error(
                "Archive member %s exceeded file size limit (%s > %s)",
                name,
                member.file_size,
                constants.MAX_ARCHIVE_FILE_SIZE,
            )
            raise InstallFailed("release archive contained an oversized file")
        if member.compress_size == 0 and member.file_size > 0:
            _LOGGER.error("Archive member %s reported zero compression size", name)
            raise InstallFailed("release archive contained a suspiciously compressed file")
        if (
            member.compress_size > 0
            and member.file_size > member.compress_size * constants.MAX_COMPRESSION_RATIO
        ):
            _LOGGER.error(
                "Archive member %s exceeded compression ratio limit (%s > %s)",
                name,
                member.file_size,
                member.compress_size * constants.MAX_COMPRESSION_RATIO,
            )
            raise InstallFailed("release archive exceeded safe compression ratio")
        total_bytes += member.file_size
        if total_bytes > constants.MAX_ARCHIVE_TOTAL_BYTES:
            _LOGGER.error(
                "Archive expanded to %s bytes which exceeds limit %s",
                total_bytes,
                constants.MAX_ARCHIVE_TOTAL_BYTES,
            )
            raise InstallFailed("release archive expanded beyond safe limits")
        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(member) as source, destination.open("wb") as target:
            shutil.copyfileobj(source, target)
        _LOGGER.debug("Extracted archive member %s to %s", name, destination)

    _LOGGER.info(
        "Extracted %s entries totalling %s bytes", processed_entries, total_bytes
    )


def find_missing_files(root: Path, names: Iterable[str]) -> list[str]:
    """Return the declared ``names`` that do not exist below ``root``."""

    missing: list[str] = []
    for name in names:
        components = [part for part in name.replace("\\", "/").split("/") if part and part != "."]
        if not (root.joinpath(*components)).exists():
            missing.append(name)
    if missing:
        _LOGGER.error("Release archive is missing declared files: %s", ", ".join(missing))
    else:
        _LOGGER.info("All declared files found")
    return missing
