"""Structured logging configuration with structlog.

Environment variables:
- LOG_FORMAT: "json" for one JSON object per line, "console" or unset for
  the human-readable renderer.
- LOG_LEVEL: "DEBUG", "INFO" (default), "WARNING", "ERROR", or "CRITICAL".
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_LOG_FORMATS = ("", "console", "json")
_LOG_LEVELS = ("CRITICAL", "DEBUG", "ERROR", "INFO", "WARNING")

# uvicorn logs every WebSocket handshake and HTTP request at INFO.
_NOISY_LOGGERS = ("uvicorn.access", "websockets.protocol")


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Render Enum field values (error codes, statuses) as their .value."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def _is_test() -> bool:
    return "pytest" in sys.modules


def _env_choice(name: str, default: str, choices: tuple[str, ...], *, upper: bool) -> str:
    raw = os.environ.get(name, default)
    value = raw.upper() if upper else raw.lower()
    if value not in choices:
        allowed = ", ".join(repr(c) for c in choices if c) or "unset"
        raise ValueError(f"Invalid {name}={value!r}. Must be one of {allowed} or unset.")
    return value


def _renderer_for(*, json_mode: bool, colors: bool) -> logging.Formatter:
    final = structlog.processors.JSONRenderer() if json_mode else structlog.dev.ConsoleRenderer(colors=colors)
    # Tracebacks are formatted here so each handler renders them exactly once.
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            final,
        ],
    )


SHARED_PROCESSORS = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    _serialize_enums,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
)


def _open_log_file(log_dir: Path | str) -> logging.FileHandler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    return logging.FileHandler(directory / f"{stamp}.log")


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
) -> Path | None:
    """Route structlog and stdlib logging to stdout, plus a log file when asked.

    Returns the path of the datetime-stamped file created under ``log_dir``,
    or None when no file is written (no ``log_dir``, or running under pytest).
    """
    json_mode = _env_choice("LOG_FORMAT", "", _LOG_FORMATS, upper=False) == "json"
    if level is None:
        level = getattr(logging, _env_choice("LOG_LEVEL", "INFO", _LOG_LEVELS, upper=True))

    structlog.configure(
        processors=[*SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_renderer_for(json_mode=json_mode, colors=sys.stdout.isatty()))
    root.addHandler(console)

    if log_dir is None or _is_test():
        return None
    file_handler = _open_log_file(log_dir)
    file_handler.setFormatter(_renderer_for(json_mode=json_mode, colors=False))
    root.addHandler(file_handler)
    return Path(file_handler.baseFilename)
