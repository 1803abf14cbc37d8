import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from app.platform.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _log_file_path() -> str:
    log_dir = os.path.join(os.getcwd(), settings.LOG_DIR)
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)
    return os.path.join(log_dir, "product_page_optimizer.log")


def get_logger(name: str) -> logging.Logger:
    """
    Creates a logger instance that writes to console and, when enabled, a file.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(settings.LOG_LEVEL.upper())

    formatter = logging.Formatter(LOG_FORMAT)

    if settings.LOG_TO_FILE:
        file_handler = RotatingFileHandler(_log_file_path(), maxBytes=10_000_000, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


class StructuredLogger:
    """
    Thin wrapper over a stdlib logger that emits a context tag plus keyword fields.

    The fields are rendered into the message as JSON and are also attached to the
    LogRecord as ``record.context`` and ``record.fields`` so callers (and tests
    using ``caplog``) can inspect them without parsing text.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def log(self, level: int, context: str, exc_info: Any = None, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        rendered = json.dumps(fields, default=str, ensure_ascii=False) if fields else ""
        self._logger.log(
            level,
            "[%s] %s",
            context,
            rendered,
            exc_info=exc_info,
            extra={"context": context, "fields": fields},
        )

    def debug(self, context: str, **fields: Any) -> None:
        self.log(logging.DEBUG, context, **fields)

    def info(self, context: str, **fields: Any) -> None:
        self.log(logging.INFO, context, **fields)

    def warning(self, context: str, **fields: Any) -> None:
        self.log(logging.WARNING, context, **fields)

    def error(self, context: str, exc_info: Any = None, **fields: Any) -> None:
        self.log(logging.ERROR, context, exc_info=exc_info, **fields)


def get_structured_logger(name: str, logger: Optional[logging.Logger] = None) -> StructuredLogger:
    return StructuredLogger(logger or get_logger(name))
