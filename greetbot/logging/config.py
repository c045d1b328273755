"""Centralized logging configuration for greetbot.

Every component receives an explicitly constructed logger. Per-request context
(correlation id, event id, event time) is attached by deriving a new
:class:`ContextLoggerAdapter`, never by mutating a shared logger.

Examples
--------
.. code-block:: python

    import logging
    from greetbot.logging.config import bind_logger, setup_logging

    setup_logging("DEBUG")
    logger = bind_logger(logging.getLogger("greetbot"), context="event_handler")
    logger.bind(request_id="abc").info("unexpected HTTP method")
    # -> ... unexpected HTTP method context=event_handler request_id=abc
"""

from __future__ import annotations

import argparse
import logging
import logging.config
import os
from typing import Any, Final, Mapping, MutableMapping, Optional

__all__: list[str] = [
    "DEFAULT_LOG_FORMAT",
    "ContextLoggerAdapter",
    "add_logging_arguments",
    "bind_logger",
    "setup_logging",
    "setup_logging_from_args",
]

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)8s] %(name)s: %(message)s"


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter carrying immutable ``key=value`` context fields."""

    def __init__(self, logger: logging.Logger, extra: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(logger, dict(extra or {}))

    def bind(self, **fields: Any) -> "ContextLoggerAdapter":
        """Return a child adapter with ``fields`` added; this adapter is left untouched."""
        merged = dict(self.extra)
        merged.update(fields)
        return ContextLoggerAdapter(self.logger, merged)

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        # Context values come from requests and may contain "%", so format before appending them
        if args:
            # A lone mapping is the dict form, as in LogRecord.getMessage
            if len(args) == 1 and isinstance(args[0], Mapping) and args[0]:
                args = args[0]
            msg = msg % args
        msg, kwargs = self.process(msg, kwargs)
        kwargs.setdefault("stacklevel", 2)
        self.logger.log(level, msg, **kwargs)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        if self.extra:
            context = " ".join(f"{key}={value}" for key, value in self.extra.items() if value is not None)
            if context:
                msg = f"{msg} {context}"
        return msg, kwargs


def bind_logger(logger: logging.Logger | ContextLoggerAdapter, **fields: Any) -> ContextLoggerAdapter:
    """Derive a context logger from a plain logger or an existing adapter."""
    if isinstance(logger, ContextLoggerAdapter):
        return logger.bind(**fields)
    return ContextLoggerAdapter(logger, fields)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """Configure process-wide logging handlers.

    Parameters
    ----------
    level : str
        Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_file : Optional[str]
        Also write records to this file when given
    log_format : Optional[str]
        Record format; defaults to :data:`DEFAULT_LOG_FORMAT`
    """
    level = level.upper()
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "stream": "ext://sys.stdout",
            "level": level,
        }
    }
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "formatter": "standard",
            "filename": log_file,
            "encoding": "utf-8",
            "level": level,
        }

    handler_names = list(handlers.keys())
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": log_format or DEFAULT_LOG_FORMAT,
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {  # root logger
                "handlers": handler_names,
                "level": level,
            },
            "greetbot": {
                "handlers": handler_names,
                "level": level,
                "propagate": False,
            },
            "uvicorn": {
                "handlers": handler_names,
                "level": level,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": handler_names,
                "level": "WARNING",
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)


def add_logging_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add the shared logging options to ``parser``."""
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: LOG_LEVEL environment variable, else INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Path to a log file (default: log to stdout only)",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        help="Log record format string",
    )
    return parser


def setup_logging_from_args(args: Any, default_level: str = "INFO") -> None:
    """Configure logging from parsed CLI options."""
    setup_logging(
        level=getattr(args, "log_level", None) or default_level,
        log_file=getattr(args, "log_file", None),
        log_format=getattr(args, "log_format", None),
    )
