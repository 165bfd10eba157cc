"""Stream release archives to a private temporary location."""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from pathlib import Path
from typing import BinaryIO, Callable

from services.bootstrap import transport
from services.bootstrap.constants import ARCHIVE_FILE_NAME, DOWNLOAD_DIR_PREFIX, MAX_DOWNLOAD_BYTES
from services.bootstrap.errors import DownloadIncomplete
from services.bootstrap.models import DownloadArtifact


_LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, "int | None"], None]

__all__ = ["ArchiveFetcher", "ProgressCallback"]


class _TransferAborted(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ArchiveFetcher:
    """Download a payload chunk by chunk so peak memory stays bounded.

    A failed or cancelled transfer removes its temporary directory before
    :class:`DownloadIncomplete` is raised, so only complete downloads are
    ever returned.  No retries happen here; :attr:`bytes_received` tells the
    caller how far the last attempt got.
    """

    def __init__(
        self,
        *,
        timeout: float = 180.0,
        chunk_size: int = 64 * 1024,
        max_bytes: int = MAX_DOWNLOAD_BYTES,
        temp_root: Path | None = None,
    ) -> None:
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._max_bytes = max_bytes
        self._temp_root = temp_root
        self.bytes_received = 0

    def download(
        self,
        url: str,
        *,
        progress: ProgressCallback | None = None,
        cancel: threading.Event | None = None,
        file_name: str = ARCHIVE_FILE_NAME,
    ) -> DownloadArtifact:
        _LOGGER.info("Downloading %s", url)
        self.bytes_received = 0
        target_dir = Path(tempfile.mkdtemp(prefix=DOWNLOAD_DIR_PREFIX, dir=self._temp_root))
        target_path = target_dir / file_name
        expected: int | None = None

        try:
            with transport.open_url(url, timeout=self._timeout) as response, target_path.open(
                "wb"
            ) as destination:
                expected = transport.advertised_length(response)
                self._stream(response, destination, expected, progress, cancel)
            if expected is not None and self.bytes_received != expected:
                raise _TransferAborted(
                    f"received {self.bytes_received} bytes but the server advertised {expected}"
                )
        except _TransferAborted as exc:
            raise self._fail(url, target_dir, expected, exc.reason) from None
        except transport.TRANSPORT_ERRORS as exc:
            raise self._fail(url, target_dir, expected, str(exc) or type(exc).__name__) from exc
        except BaseException:
            shutil.rmtree(target_dir, ignore_errors=True)
            raise

        _LOGGER.info("Download completed: %s bytes", self.bytes_received)
        return DownloadArtifact(
            path=target_path,
            source_url=url,
            bytes_received=self.bytes_received,
            expected_bytes=expected,
        )

    def _stream(
        self,
        response: BinaryIO,
        destination: BinaryIO,
        expected: int | None,
        progress: ProgressCallback | None,
        cancel: threading.Event | None,
    ) -> None:
        if expected is not None and expected > self._max_bytes:
            raise _TransferAborted(f"advertised size {expected} exceeds limit {self._max_bytes}")
        while True:
            if cancel is not None and cancel.is_set():
                raise _TransferAborted("cancelled")
            chunk = response.read(self._chunk_size)
            if not chunk:
                return
            destination.write(chunk)
            self.bytes_received += len(chunk)
            if self.bytes_received > self._max_bytes:
                raise _TransferAborted(f"payload exceeds limit {self._max_bytes}")
            if progress is not None:
                progress(self.bytes_received, expected)

    def _fail(
        self, url: str, target_dir: Path, expected: int | None, reason: str
    ) -> DownloadIncomplete:
        shutil.rmtree(target_dir, ignore_errors=True)
        _LOGGER.warning(
            "Download of %s failed after %s bytes: %s", url, self.bytes_received, reason
        )
        return DownloadIncomplete(
            url,
            bytes_received=self.bytes_received,
            expected_bytes=expected,
            reason=reason,
        )
