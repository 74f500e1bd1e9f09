# domlocator/utils/logger.py
from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from domlocator.utils.config import LogLevel, get_settings


__all__ = [
    "get_logger",
    "set_log_level",
    "bind",
    "unbind",
    "log_with_context",
    "attach_file_logger",
    "detach_file_logger",
]

ROOT_LOGGER = "domlocator"

_config_lock = threading.Lock()
_configured = False
_global_extra: Dict[str, Any] = {}  # context attached to every record

_LEVEL_MAP = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; bound context is merged into the payload."""

    time_format = "%Y-%m-%dT%H:%M:%S"

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(self.time_format),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload.update(context)

        # asyncio task name is more useful than the thread here
        payload["task"] = getattr(record, "taskName", None)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _file_handler(path: os.PathLike | str, level: int, backups: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=os.fspath(path),
        maxBytes=5 * 1024 * 1024,
        backupCount=backups,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def _ensure_configured() -> None:
    """
    Configure the package logger once based on settings.
    Subsequent calls are no-ops.
    """
    global _configured
    if _configured:
        return

    with _config_lock:
        if _configured:
            return

        settings = get_settings()
        level = _LEVEL_MAP.get(settings.LOG_LEVEL, logging.INFO)

        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(level)
        logger.propagate = False
        for h in list(logger.handlers):
            logger.removeHandler(h)

        console = Console(stderr=True, color_system="auto" if settings.COLORIZED_OUTPUT else None)
        rich_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            markup=False,  # selectors are full of [brackets]
        )
        rich_handler.setFormatter(logging.Formatter("%(message)s"))
        rich_handler.setLevel(level)
        logger.addHandler(rich_handler)

        if settings.LOG_TO_FILE:
            settings.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
            logger.addHandler(_file_handler(settings.LOG_FILE, level, backups=5))

        # Playwright's driver chatter is only interesting while debugging
        for noisy in ("asyncio", "playwright"):
            logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

        _configured = True


def _qualify(name: Optional[str]) -> str:
    if not name:
        return ROOT_LOGGER
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return name
    return f"{ROOT_LOGGER}.{name}"


def get_logger(name: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a configured logger wrapped with a LoggerAdapter
    that injects the global bound context into every record.
    """
    _ensure_configured()
    return logging.LoggerAdapter(logging.getLogger(_qualify(name)), extra={"context": _global_extra})


def set_log_level(level: LogLevel | str) -> None:
    """Adjust the package log level at runtime."""
    _ensure_configured()
    lvl = level if isinstance(level, str) else level.value
    py_level = getattr(logging, lvl.upper(), logging.INFO)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(py_level)
    for h in logger.handlers:
        h.setLevel(py_level)


def bind(**kwargs: Any) -> None:
    """Bind global context (e.g. run_id=...) attached to every subsequent record."""
    _global_extra.update(kwargs)


def unbind(*keys: str) -> None:
    for k in keys:
        _global_extra.pop(k, None)


def log_with_context(logger: logging.LoggerAdapter, **kwargs: Any) -> logging.LoggerAdapter:
    """
    Return a new LoggerAdapter with extra context for a scoped section:

        log = get_logger(__name__)
        log_with_context(log, selector="aria/Submit").debug("resolving")
    """
    merged = dict(_global_extra)
    if isinstance(logger.extra, dict) and isinstance(logger.extra.get("context"), dict):
        merged.update(logger.extra["context"])
    merged.update(kwargs)
    return logging.LoggerAdapter(logger.logger, extra={"context": merged})


def attach_file_logger(path: os.PathLike | str, level: Optional[int] = None) -> logging.Handler:
    """
    Attach a JSON file handler at runtime (e.g. one file per CLI run).
    Returns the handler so the caller can detach it via detach_file_logger.
    """
    _ensure_configured()
    logger = logging.getLogger(ROOT_LOGGER)
    p = os.fspath(path)
    parent = os.path.dirname(p)
    if parent:
        os.makedirs(parent, exist_ok=True)
    handler = _file_handler(p, level if level is not None else logger.level, backups=3)
    logger.addHandler(handler)
    return handler


def detach_file_logger(handler: logging.Handler) -> None:
    """Remove a handler returned by attach_file_logger."""
    logging.getLogger(ROOT_LOGGER).removeHandler(handler)
    handler.close()
