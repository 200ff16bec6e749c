"""Central logging configuration for the runtime setup tool.

Setup runs are usually launched from a package manager hook where the console
output scrolls away quickly, so every run also appends to a log file that can
be attached to bug reports. Paths in that file are redacted so the user's home
directory and account name never leave the machine.

Two environment variables choose where the log file is written:

``QBRT_LOG_FILE``
    Absolute path of the log file to append to.

``QBRT_LOG_DIR``
    Directory that receives ``setup.log``. Ignored when ``QBRT_LOG_FILE`` is
    present.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from enum import Enum
from pathlib import Path

_LOG_FILE_ENV = "QBRT_LOG_FILE"
_LOG_DIR_ENV = "QBRT_LOG_DIR"
_DEFAULT_LOG_DIR = Path(".qbrt") / "logs"
_DEFAULT_LOGNAME = "setup.log"
_HANDLER_TAG = "_qbrt_logging_handler"
_FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_CONSOLE_FORMAT = "  %(levelname)s: %(message)s"

USER_PLACEHOLDER = "<user>"
USER_HOME_PLACEHOLDER = "<user_home>"


class LogVerbosity(str, Enum):
    """How much of a setup run ends up in the log file."""

    DISABLED = "disabled"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"

    @property
    def level(self) -> int:
        return _LEVELS[self]

    @classmethod
    def parse(cls, value: "LogVerbosity | str") -> "LogVerbosity":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported log verbosity: {value}") from exc


_LEVELS = {
    LogVerbosity.DISABLED: logging.CRITICAL + 1,
    LogVerbosity.ERROR: logging.ERROR,
    LogVerbosity.WARNING: logging.WARNING,
    LogVerbosity.INFO: logging.INFO,
    LogVerbosity.VERBOSE: logging.DEBUG,
}
_DEFAULT_VERBOSITY = LogVerbosity.INFO


class _State:
    log_path: Path | None = None
    file_handler: logging.FileHandler | None = None
    verbosity: LogVerbosity = _DEFAULT_VERBOSITY


_STATE = _State()
_REDACTIONS: list[tuple[re.Pattern[str], str]] | None = None


def _redactions() -> list[tuple[re.Pattern[str], str]]:
    global _REDACTIONS
    if _REDACTIONS is not None:
        return _REDACTIONS

    homes = {str(Path.home())}
    homes.update(
        os.path.expanduser(os.environ[name])
        for name in ("HOME", "USERPROFILE")
        if os.environ.get(name)
    )
    users = {Path.home().name}
    users.update(
        os.environ[name] for name in ("USERNAME", "USER", "LOGNAME") if os.environ.get(name)
    )

    case_flags = re.IGNORECASE if os.name == "nt" else 0
    redactions: list[tuple[re.Pattern[str], str]] = []
    spellings: set[str] = set()
    for home in sorted({os.path.normpath(h) for h in homes if h}, key=len, reverse=True):
        if home in {os.sep, "."}:
            continue
        # Paths may be logged with either separator on Windows.
        spellings.update({home, home.replace("\\", "/"), home.replace("/", "\\")})
    for spelling in sorted(spellings, key=len, reverse=True):
        redactions.append((re.compile(re.escape(spelling), case_flags), USER_HOME_PLACEHOLDER))
    for user in sorted({u.strip() for u in users if u and u.strip()}, key=len, reverse=True):
        pattern = re.escape(user)
        if any(character.isalnum() for character in user):
            pattern = rf"(?<!\w){pattern}(?!\w)"
        redactions.append((re.compile(pattern, re.IGNORECASE), USER_PLACEHOLDER))

    _REDACTIONS = redactions
    return redactions


def redact(message: str) -> str:
    """Replace the user's home directory and account name in ``message``."""

    for pattern, placeholder in _redactions() if message else ():
        message = pattern.sub(placeholder, message)
    return message


class _RedactingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


def ensure_app_logging(verbosity: LogVerbosity | str | None = None) -> Path:
    """Configure the root logger for a setup run and return the log file path.

    The first call installs the file handler and, when stderr is interactive,
    a console handler limited to warnings (progress lines already go to
    stdout). Later calls only apply ``verbosity``.
    """

    if _STATE.log_path is not None:
        if verbosity is not None:
            set_file_log_verbosity(verbosity)
        return _STATE.log_path

    if verbosity is not None:
        _STATE.verbosity = LogVerbosity.parse(verbosity)

    log_path = _resolve_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    _STATE.file_handler = _install(root, _build_file_handler(log_path))
    if _stderr_is_interactive(root):
        _install(root, _build_console_handler())
    _STATE.log_path = log_path

    logging.getLogger(__name__).info(
        "Writing setup logs to %s (verbosity=%s)", log_path, _STATE.verbosity.value
    )
    return log_path


def set_file_log_verbosity(verbosity: LogVerbosity | str) -> None:
    """Adjust the minimum severity recorded in the setup log file."""

    _STATE.verbosity = LogVerbosity.parse(verbosity)
    if _STATE.file_handler is None:
        return
    _STATE.file_handler.setLevel(_STATE.verbosity.level)
    logging.getLogger(__name__).info("File log verbosity set to %s", _STATE.verbosity.value)


def get_file_log_verbosity() -> LogVerbosity:
    return _STATE.verbosity


def _build_file_handler(log_path: Path) -> logging.FileHandler:
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(_STATE.verbosity.level)
    handler.setFormatter(_RedactingFormatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _build_console_handler() -> logging.StreamHandler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.WARNING)
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    return handler


def _install(root: logging.Logger, handler):  # type: ignore[no-untyped-def]
    setattr(handler, _HANDLER_TAG, True)
    root.addHandler(handler)
    return handler


def _resolve_log_path() -> Path:
    explicit = os.environ.get(_LOG_FILE_ENV)
    if explicit:
        return Path(explicit).expanduser()
    directory = os.environ.get(_LOG_DIR_ENV)
    if directory:
        return Path(directory).expanduser() / _DEFAULT_LOGNAME
    return Path.home() / _DEFAULT_LOG_DIR / _DEFAULT_LOGNAME


def _stderr_is_interactive(root: logging.Logger) -> bool:
    stderr = getattr(sys, "stderr", None)
    try:
        if stderr is None or not stderr.isatty():
            return False
    except (AttributeError, OSError, ValueError):
        return False
    return not any(
        isinstance(handler, logging.StreamHandler) and handler.stream is stderr
        for handler in root.handlers
    )


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`ensure_app_logging`."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()
    _STATE.log_path = None
    _STATE.file_handler = None
    _STATE.verbosity = _DEFAULT_VERBOSITY


__all__ = [
    "LogVerbosity",
    "USER_HOME_PLACEHOLDER",
    "USER_PLACEHOLDER",
    "ensure_app_logging",
    "get_file_log_verbosity",
    "redact",
    "set_file_log_verbosity",
]
