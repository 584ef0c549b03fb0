"""
Logging setup for the analytics API.

One JSON object per line in production (or when LOG_FORMAT=json), plain text
otherwise. Engine modules log through `logging.getLogger(__name__)` and pass
structured context as `extra={"extra_fields": {...}}`, which the JSON
formatter merges into the top level of each line.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from core.config import settings

SERVICE_NAME = "fitness-analytics"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Request logging middleware already records every call
QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "httpx")


class JSONFormatter(logging.Formatter):
    """Render a record (plus its `extra_fields`) as a single JSON line."""

    def __init__(self, environment: Optional[str] = None):
        super().__init__()
        self.environment = environment or settings.ENVIRONMENT

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "environment": self.environment,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


def use_json_format() -> bool:
    return settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"


def setup_logging(level: Optional[str] = None, json_format: Optional[bool] = None) -> logging.Logger:
    """
    Configure the root logger once for the process.

    `level` and `json_format` default to LOG_LEVEL and LOG_FORMAT/ENVIRONMENT.
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    if json_format is None:
        json_format = use_json_format()

    formatter = JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
