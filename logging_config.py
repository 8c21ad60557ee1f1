"""Logging configuration for Git Diff Sidebar."""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path

from config import _config_dir

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(repo)s] %(module)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
APP_LOG = "git_diff_sidebar.log"
ERROR_LOG = "errors.log"


class RepositoryFilter(logging.Filter):
    """Stamp every record with the repository the sidebar is showing."""

    repo: str = "-"

    def filter(self, record: logging.LogRecord) -> bool:
        record.repo = RepositoryFilter.repo
        return True


def set_log_repository(repo_root: Path | None):
    """Name the repository in subsequent log records."""
    RepositoryFilter.repo = str(repo_root) if repo_root else "-"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for feeding log files to other tools."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "repo": getattr(record, "repo", RepositoryFilter.repo),
            "message": record.getMessage(),
            "location": f"{record.module}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_data", None)
        if extra:
            entry["extra"] = extra
        return json.dumps(entry, ensure_ascii=False)


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      max_file_size: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RepositoryFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    log_to_file: bool = True,
    log_to_console: bool = True,
    json_format: bool = False,
    max_file_size: int = 2 * 1024 * 1024,
    backup_count: int = 3
) -> logging.Logger:
    """
    Configure the root logger for the application.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Write ``git_diff_sidebar.log`` and ``errors.log`` under
            the config directory's ``logs`` folder
        log_to_console: Echo INFO and above to stdout
        json_format: Use JSONFormatter instead of the text format
        max_file_size: Rotation threshold per log file, in bytes
        backup_count: Rotated files kept per log

    Returns:
        The root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = JSONFormatter() if json_format else logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(RepositoryFilter())
        root_logger.addHandler(console_handler)

    if log_to_file:
        log_dir = _config_dir() / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(
            _rotating_handler(log_dir / APP_LOG, logging.DEBUG, formatter, max_file_size, backup_count)
        )
        root_logger.addHandler(
            _rotating_handler(log_dir / ERROR_LOG, logging.ERROR, formatter, max_file_size, backup_count)
        )

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_performance(logger: logging.Logger, operation: str, duration: float, **kwargs):
    """Debug-log the duration of an operation, with its details as extra data."""
    extra_data = {"operation": operation, "duration_ms": round(duration * 1000, 2), **kwargs}
    logger.debug(f"{operation} took {duration * 1000:.0f}ms", extra={"extra_data": extra_data})


def configure_qt_logging():
    """Forward Qt's warnings and debug output to the 'qt' logger."""
    from PySide6.QtCore import QtMsgType, qInstallMessageHandler

    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }
    qt_logger = get_logger("qt")

    def qt_message_handler(msg_type, context, message: str):
        qt_logger.log(levels.get(msg_type, logging.WARNING), message)

    qInstallMessageHandler(qt_message_handler)
