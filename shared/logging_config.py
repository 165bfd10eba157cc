"""Central logging configuration for the bootstrapper.

Each run writes a timestamped log file so that a failed install can be
diagnosed after the console window has closed.  Paths inside the user's home
directory are redacted before they reach the file.

Two environment variables allow customising where the log file is written:

``PARADISE_LOG_FILE``
    Absolute path to the log file that should be created.

``PARADISE_LOG_DIR``
    Directory where the timestamped log file will be created.  Ignored when
    ``PARADISE_LOG_FILE`` is present.
"""

from __future__ import annotations

import datetime
import logging
import os
import re
import sys
from enum import Enum
from pathlib import Path
from typing import Iterable

_LOG_FILE_ENV = "PARADISE_LOG_FILE"
_LOG_DIR_ENV = "PARADISE_LOG_DIR"
_LOG_NAME_TEMPLATE = "bootstrapper_{timestamp}.log"
_CONFIGURED = False
_LOG_PATH: Path | None = None
_HANDLER_TAG = "_paradise_logging_handler"
_FILE_HANDLER: logging.FileHandler | None = None

USER_HOME_PLACEHOLDER = "<user_home>"


class LogVerbosity(str, Enum):
    """Verbosity levels supported by the bootstrapper log file."""

    DISABLED = "disabled"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"


_VERBOSITY_LEVELS: dict[LogVerbosity, int] = {
    LogVerbosity.DISABLED: logging.CRITICAL + 1,
    LogVerbosity.ERROR: logging.ERROR,
    LogVerbosity.WARNING: logging.WARNING,
    LogVerbosity.INFO: logging.INFO,
    LogVerbosity.VERBOSE: logging.DEBUG,
}

_DEFAULT_VERBOSITY = LogVerbosity.INFO
_CURRENT_VERBOSITY = _DEFAULT_VERBOSITY


def _home_variants() -> list[str]:
    candidates = {str(Path.home())}
    for env_var in ("HOME", "USERPROFILE"):
        value = os.environ.get(env_var)
        if value:
            candidates.add(os.path.expanduser(value))
    variants: set[str] = set()
    for candidate in candidates:
        normalised = os.path.normpath(candidate)
        if normalised in {os.sep, ".", ""}:
            continue
        variants.add(normalised)
        variants.add(normalised.replace("\\", "/"))
        variants.add(normalised.replace("/", "\\"))
    # Longest first so nested home paths are replaced before their parents.
    return sorted(variants, key=len, reverse=True)


def _build_redaction_patterns() -> tuple[re.Pattern[str], ...]:
    flags = re.IGNORECASE if os.name == "nt" else 0
    return tuple(re.compile(re.escape(variant), flags) for variant in _home_variants())


_REDACTION_PATTERNS: tuple[re.Pattern[str], ...] = _build_redaction_patterns()


def _sanitize_text(message: str) -> str:
    if not message:
        return message
    redacted = message
    for pattern in _REDACTION_PATTERNS:
        redacted = pattern.sub(USER_HOME_PLACEHOLDER, redacted)
    return redacted


class _RedactingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return _sanitize_text(super().format(record))


def ensure_bootstrap_logging(log_dir: Path | None = None) -> Path:
    """Configure the root logger for a bootstrapper run.

    The first invocation installs a file handler (filtered by the current
    verbosity) and, when stderr is interactive, a console handler at INFO.
    Later calls return the already configured log file path.
    """

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER

    if _CONFIGURED and _LOG_PATH is not None:
        return _LOG_PATH

    log_path = _resolve_log_path(log_dir)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    formatter = _RedactingFormatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(_VERBOSITY_LEVELS[_CURRENT_VERBOSITY])
    file_handler.setFormatter(formatter)
    setattr(file_handler, _HANDLER_TAG, True)
    root.addHandler(file_handler)
    _FILE_HANDLER = file_handler

    if _should_log_to_stderr(root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_TAG, True)
        root.addHandler(stream_handler)

    _CONFIGURED = True
    _LOG_PATH = log_path

    logging.getLogger(__name__).info(
        "Writing bootstrapper logs to %s (verbosity=%s)",
        log_path,
        _CURRENT_VERBOSITY.value,
    )
    return log_path


def set_file_log_verbosity(verbosity: LogVerbosity | str) -> None:
    """Adjust the minimum severity recorded in the log file."""

    global _CURRENT_VERBOSITY

    if isinstance(verbosity, str):
        try:
            verbosity = LogVerbosity(verbosity.lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported log verbosity: {verbosity}") from exc

    _CURRENT_VERBOSITY = verbosity
    if _FILE_HANDLER is not None:
        _FILE_HANDLER.setLevel(_VERBOSITY_LEVELS[verbosity])
    logging.getLogger(__name__).info("File log verbosity set to %s", verbosity.value)


def get_file_log_verbosity() -> LogVerbosity:
    return _CURRENT_VERBOSITY


def _resolve_log_path(log_dir: Path | None) -> Path:
    env_file = os.environ.get(_LOG_FILE_ENV)
    if env_file:
        return Path(env_file).expanduser()

    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    file_name = _LOG_NAME_TEMPLATE.format(timestamp=timestamp)

    env_dir = os.environ.get(_LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser() / file_name
    if log_dir is not None:
        return Path(log_dir).expanduser() / file_name

    from app.config import default_data_dir

    return default_data_dir() / "logs" / file_name


def _should_log_to_stderr(handlers: Iterable[logging.Handler]) -> bool:
    stderr = getattr(sys, "stderr", None)
    if stderr is None:
        return False
    is_tty = getattr(stderr, "isatty", None)
    if not callable(is_tty):
        return False
    try:
        if not is_tty():
            return False
    except (OSError, ValueError):
        return False

    for handler in handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is stderr:
            return False
    return True


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`ensure_bootstrap_logging`."""

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER, _CURRENT_VERBOSITY

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    _CONFIGURED = False
    _LOG_PATH = None
    _FILE_HANDLER = None
    _CURRENT_VERBOSITY = _DEFAULT_VERBOSITY


__all__ = [
    "LogVerbosity",
    "USER_HOME_PLACEHOLDER",
    "ensure_bootstrap_logging",
    "get_file_log_verbosity",
    "set_file_log_verbosity",
]
