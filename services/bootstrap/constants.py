"""Constants shared across the bootstrap pipeline modules."""

from __future__ import annotations

SHA256_HEX_LENGTH = 64
ALLOWED_URL_SCHEMES = ("https", "http")

MAX_MANIFEST_BYTES = 1024 * 1024  # 1 MiB
MAX_DOWNLOAD_BYTES = 1024 * 1024 * 1024  # 1 GiB

MAX_ARCHIVE_TOTAL_BYTES = 2 * 1024 * 1024 * 1024  # 2 GiB
MAX_ARCHIVE_FILE_SIZE = 1024 * 1024 * 1024  # 1 GiB per file
MAX_ARCHIVE_ENTRIES = 20000
MAX_COMPRESSION_RATIO = 100  # Uncompressed vs compressed bytes

ARCHIVE_FILE_NAME = "release.zip"
DOWNLOAD_DIR_PREFIX = "paradise-download-"

STAGING_SUFFIX = ".staging-"
BACKUP_SUFFIX = ".backup"
DISCARD_SUFFIX = ".discard"
LOCK_SUFFIX = ".lock"
JOURNAL_SUFFIX = ".promotion.json"

VC_REDIST_ARGUMENTS = ("/install", "/quiet", "/norestart")
# 1638: a newer runtime is already installed, 3010: success, reboot required.
VC_REDIST_SUCCESS_CODES = frozenset({0, 1638, 3010})
VC_REDIST_REGISTRY_KEYS = (
    r"SOFTWARE\Microsoft\VisualStudio\14.0\VC\Runtimes\x64",
    r"SOFTWARE\WOW6432Node\Microsoft\VisualStudio\14.0\VC\Runtimes\x64",
)

USER_AGENT_TEMPLATE = "ParadiseBootstrapper/{version}"
CA_BUNDLE_ENV = "PARADISE_CA_BUNDLE"
