from collections.abc import Mapping
import logging
from logging import FileHandler, Logger, StreamHandler
import os
from typing import Any

from src.main.config import config

LOG_DIR = os.path.join(os.path.dirname(__file__), "..", "logs")
LOG_FILE = os.path.join(LOG_DIR, "debug.log")

if not os.path.exists(LOG_DIR):
    os.makedirs(LOG_DIR)

logging_format = "%(asctime)s [%(levelname)s]|[%(process)d]| %(name)s: %(message)s"
plain_logging_format = "%(asctime)s [%(process)d]| %(message)s"
time_logging_format = "%Y-%m-%d %H:%M:%S"

log_level = getattr(logging, config.app.LOG_LEVEL.upper(), logging.INFO)
file_log_level = getattr(logging, config.app.LOG_LEVEL_FILE.upper(), logging.WARNING)

SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "token",
        "access_token",
        "refresh_token",
        "password",
        "secret",
        "api_key",
        "api-key",
    }
)


def render_metadata(metadata: Mapping[str, Any]) -> str:
    """
    Render structured log metadata as sorted ``key=value`` pairs.
    Values of sensitive keys are replaced with ``***``.
    """

    def mask(k: str, v: Any) -> str:
        return "***" if k.lower() in SENSITIVE_KEYS else repr(v)

    return ", ".join(f"{k}={mask(k, metadata[k])}" for k in sorted(metadata))


class MetadataFormatter(logging.Formatter):
    """
    Appends ``extra={"metadata": {...}}`` passed to a logging call to the line.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        metadata = getattr(record, "metadata", None)
        if isinstance(metadata, Mapping) and metadata:
            message = f"{message} | {render_metadata(metadata)}"
        return message


def get_file_handler() -> FileHandler:
    file_handler = logging.FileHandler(LOG_FILE, "a", "utf-8")
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(MetadataFormatter(logging_format, time_logging_format))
    return file_handler


def get_stream_handler(*, plain_format: bool = False) -> StreamHandler:  # type: ignore
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(log_level)
    line_format = plain_logging_format if plain_format else logging_format
    stream_handler.setFormatter(MetadataFormatter(line_format, time_logging_format))
    return stream_handler


def get_logger(name: Any, *, plain_format: bool = False) -> Logger:
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(log_level)

    if plain_format:
        logger.addHandler(get_stream_handler(plain_format=True))
    else:
        logger.addHandler(get_file_handler())
        logger.addHandler(get_stream_handler())

    logger.propagate = False
    return logger
