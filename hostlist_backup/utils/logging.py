"""
Logging setup for hostlist_backup.

Every module logs through logging.getLogger(__name__), which places it under
the "hostlist_backup" logger. setup_logging() attaches a console handler
(stderr, optionally colored) and a dated debug log file to that logger.

Environment:
    HOSTLIST_BACKUP_DEBUG       "1", "true" or "yes" forces DEBUG
    HOSTLIST_BACKUP_LOG_LEVEL   level name used when no level is given
    HOSTLIST_BACKUP_LOG_FILE    explicit log file, or "none" to disable it
"""

import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from hostlist_backup.utils.paths import DEFAULT_CONFIG_DIR

LOGGER_NAME = "hostlist_backup"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ENV_LOG_LEVEL = "HOSTLIST_BACKUP_LOG_LEVEL"
ENV_DEBUG = "HOSTLIST_BACKUP_DEBUG"
ENV_LOG_FILE = "HOSTLIST_BACKUP_LOG_FILE"

DEFAULT_LOG_DIR = DEFAULT_CONFIG_DIR / "logs"

# Log files are named <prefix><YYYYMMDD>.log
LOG_FILE_PREFIX = "hostlist_backup_"

_DISABLED_LOG_FILE_VALUES = ("", "none", "disabled")
_TRUTHY_VALUES = ("1", "true", "yes")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when stderr is a color terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and _stderr_supports_color()

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if not (self.use_colors and color):
            return super().format(record)

        # Other handlers share the record, so color a copy
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def _stderr_supports_color() -> bool:
    isatty = getattr(sys.stderr, "isatty", None)
    if isatty is None or not isatty():
        return False
    # https://no-color.org/
    if os.environ.get("NO_COLOR"):
        return False
    return os.environ.get("TERM", "") != "dumb"


def get_log_level_from_env() -> int:
    """
    Read the log level from the environment.

    HOSTLIST_BACKUP_DEBUG wins over HOSTLIST_BACKUP_LOG_LEVEL. Unknown level
    names fall back to INFO.
    """
    if os.environ.get(ENV_DEBUG, "").lower() in _TRUTHY_VALUES:
        return logging.DEBUG

    name = os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_log_file_path(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Return the file the debug log is written to, or None when disabled.

    HOSTLIST_BACKUP_LOG_FILE takes precedence; otherwise the file is named
    after today's date inside log_dir (default ~/.hostlist-backup/logs).
    """
    configured = os.environ.get(ENV_LOG_FILE)
    if configured is not None:
        if configured.lower() in _DISABLED_LOG_FILE_VALUES:
            return None
        return Path(configured)

    stamp = date.today().strftime("%Y%m%d")
    return (log_dir or DEFAULT_LOG_DIR) / f"{LOG_FILE_PREFIX}{stamp}.log"


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the hostlist_backup logger.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Console level. Defaults to get_log_level_from_env().
        verbose: Force DEBUG and include source locations on the console.
        log_dir: Directory of the dated log file.
        log_file: Explicit log file, overrides log_dir and the environment.
        enable_file_logging: Attach the file handler at all.
        use_colors: Color level names on capable terminals.

    Returns:
        The configured package logger
    """
    if verbose:
        level = logging.DEBUG
    elif level is None:
        level = get_log_level_from_env()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    # Handlers live here only, root must not print the same records again
    logger.propagate = False

    logger.addHandler(_console_handler(level, verbose, use_colors))

    if enable_file_logging:
        path = log_file or get_log_file_path(log_dir)
        if path is not None:
            try:
                logger.addHandler(_file_handler(path))
            except OSError as e:
                logger.warning(f"Could not create log file {path}: {e}")
            else:
                logger.debug(f"Log file: {path}")

    return logger


def _console_handler(level: int, verbose: bool, use_colors: bool) -> logging.Handler:
    fmt = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if use_colors:
        handler.setFormatter(ColoredFormatter(fmt, DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt, DATE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    # The file keeps everything regardless of the console level
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT))
    return handler


def cleanup_old_logs(log_dir: Optional[Path] = None, keep_count: int = 10) -> int:
    """
    Delete all but the keep_count newest log files in log_dir.

    Only files named like the dated log files are considered. A keep_count
    of 0 keeps everything.

    Returns:
        Number of deleted files
    """
    directory = log_dir or DEFAULT_LOG_DIR
    if keep_count <= 0 or not directory.is_dir():
        return 0

    newest_first = sorted(
        directory.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )

    deleted = 0
    for stale in newest_first[keep_count:]:
        try:
            stale.unlink()
        except OSError:
            continue
        deleted += 1
    return deleted


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the hostlist_backup hierarchy."""
    if name != LOGGER_NAME and not name.startswith(f"{LOGGER_NAME}."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


__all__ = [
    "CONSOLE_FORMAT",
    "ColoredFormatter",
    "DATE_FORMAT",
    "DEFAULT_LOG_DIR",
    "LOGGER_NAME",
    "VERBOSE_FORMAT",
    "cleanup_old_logs",
    "get_log_file_path",
    "get_log_level_from_env",
    "get_logger",
    "setup_logging",
]
