"""
Centralized Logging Configuration
Console output for operators, rotating file output (plain or JSON lines)
for the monitoring host
"""
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes attached through ``extra=`` that are worth keeping in JSON lines
CONTEXT_FIELDS = ("error_code", "details", "node_id", "alert_id", "method", "url", "client")

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("asyncio", "urllib3", "twilio.http_client", "sqlalchemy.engine", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for shipping the file log elsewhere"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Level names colored by severity; the record itself is left untouched"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def formatMessage(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not color:
            return super().formatMessage(record)
        values = dict(record.__dict__, levelname=f"{color}{record.levelname}{self.RESET}")
        return self._style._fmt % values


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if sys.stdout.isatty():
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(
    log_file: str, level: int, json_format: bool, max_bytes: int, backup_count: int
) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(
        JSONFormatter() if json_format else logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    )
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/cloudburst.log",
    json_format: bool = False,
    console_output: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> None:
    """
    Configure the root logger.

    Replaces any handlers installed earlier, so calling it twice (API
    lifespan, then the CLI in the same process) does not duplicate output.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown -> INFO)
        log_file: Rotating log file, None for console only
        json_format: Write the file log as JSON lines
        console_output: Log to stdout
        max_bytes: Rotation size of the file log
        backup_count: Rotated files kept
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if console_output:
        root.addHandler(_console_handler(level))
    if log_file:
        root.addHandler(_file_handler(log_file, level, json_format, max_bytes, backup_count))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={logging.getLevelName(level)}, "
        f"file={log_file or 'disabled'}, json={json_format}"
    )
