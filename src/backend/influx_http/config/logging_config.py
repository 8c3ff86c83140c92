"""
Logging setup for applications embedding the client.

Client modules log through ``logging.getLogger(__name__)`` and attach
request context (endpoint, queue, measurement) with ``extra=``; the JSON
formatter lifts those attributes into the emitted document.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from influx_http.config.settings import ClientSettings, get_settings

# Record attributes set through ``extra=`` by the client modules
CONTEXT_FIELDS = ("endpoint", "queue", "measurement")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON document per record."""

    def format(self, record: logging.LogRecord) -> str:
        document = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        document.update(
            (key, getattr(record, key)) for key in CONTEXT_FIELDS if hasattr(record, key)
        )
        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)
        return json.dumps(document, ensure_ascii=False, default=str)


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter()
    return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def configure_logging(
    settings: Optional[ClientSettings] = None,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = True,
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        settings: Source of ``log_level`` and ``log_format``; the
            environment-backed settings when omitted
        log_level: Overrides ``settings.log_level``
        log_format: Overrides ``settings.log_format`` ('text' or 'json')
        log_file: Optional path of a rotating log file
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
        console_output: Whether to log to stdout

    Returns:
        The root logger
    """
    settings = settings or get_settings()
    level = (log_level or settings.log_level).upper()
    formatter = _formatter((log_format or settings.log_format).lower())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers = []
    if console_output:
        handlers.append(logging.StreamHandler(sys.stdout))
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # aiohttp access logs are noisy at DEBUG
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    return root_logger
