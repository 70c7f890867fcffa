"""Logging setup shared by every crptclient component.

Components accept an injected ``logging.Logger`` and otherwise call
``get_logger(__name__)``, which attaches one stderr handler per logger
and stops propagation to the root logger. Output is plain text or one
JSON object per line.

Environment Variables:
    CRPT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL. Default: INFO
    CRPT_LOG_FORMAT: "standard" or "json". Default: standard
"""

import json
import logging
import os
import sys
from collections.abc import Iterator
from typing import Any

ROOT_LOGGER_NAME = "crptclient"

DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

TEXT_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s: %(message)s"

# DEBUG output also points at the emitting call site
TEXT_FORMAT_DEBUG = (
    "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s "
    "[%(filename)s:%(lineno)d %(funcName)s]: %(message)s"
)

# Optional attributes passed through ``extra=`` and copied into JSON output
CONTEXT_FIELDS = ("task_id", "status_code", "url")


def _level_from(value: int | str | None) -> int:
    if value is None:
        value = os.getenv("CRPT_LOG_LEVEL", "INFO")
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def _format_from(value: str | None) -> str:
    if value is None:
        value = os.getenv("CRPT_LOG_FORMAT", "standard")
    return value.strip().lower()


def _build_formatter(level: int, format_type: str) -> logging.Formatter:
    if format_type == "json":
        return JSONFormatter(datefmt=DATE_FORMAT)
    pattern = TEXT_FORMAT_DEBUG if level <= logging.DEBUG else TEXT_FORMAT
    return logging.Formatter(pattern, datefmt=DATE_FORMAT)


class JSONFormatter(logging.Formatter):
    """Render each record as a single-line JSON object.

    Keys: timestamp, level, logger, message, location, any context
    fields given through ``extra=`` and the formatted exception when
    the record carries one.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                payload[field] = getattr(record, field)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logger(
    name: str,
    level: int | str | None = None,
    format_type: str | None = None,
    handler: logging.Handler | None = None,
) -> logging.Logger:
    """Attach a formatted handler to the named logger.

    A logger that already has handlers is returned untouched, so calling
    this repeatedly for the same name is safe.

    Args:
        name: Logger name, usually the caller's ``__name__``.
        level: Level override; CRPT_LOG_LEVEL is used when omitted.
        format_type: "standard" or "json"; CRPT_LOG_FORMAT when omitted.
        handler: Handler to attach; a stderr stream handler by default.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    resolved = _level_from(level)
    handler = handler or logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(_build_formatter(resolved, _format_from(format_type)))

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger configured from the environment."""
    return configure_logger(name)


def _package_loggers() -> Iterator[logging.Logger]:
    prefix = ROOT_LOGGER_NAME + "."
    for name, candidate in list(logging.Logger.manager.loggerDict.items()):
        if not isinstance(candidate, logging.Logger):
            continue
        if name == ROOT_LOGGER_NAME or name.startswith(prefix):
            yield candidate


def set_log_level(level: int | str) -> None:
    """Change the level of every existing crptclient logger and handler.

    Formatters are rebuilt too, so switching to DEBUG adds call-site
    details to text output.

    Args:
        level: Level constant or name.
    """
    resolved = _level_from(level)
    format_type = _format_from(None)

    for logger in _package_loggers():
        logger.setLevel(resolved)
        for handler in logger.handlers:
            handler.setLevel(resolved)
            handler.setFormatter(_build_formatter(resolved, format_type))


def mask_sensitive(value: str, visible: int = 4) -> str:
    """Hide the middle of a secret such as a request signature.

    Args:
        value: Secret to mask.
        visible: Characters kept at each end.

    Returns:
        ``"***"`` for short values, otherwise the first and last
        ``visible`` characters around ``***``.
    """
    if len(value) <= visible * 2:
        return "***"
    return f"{value[:visible]}***{value[-visible:]}"
