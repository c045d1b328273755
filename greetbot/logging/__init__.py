"""Logging configuration package."""

from .config import ContextLoggerAdapter, add_logging_arguments, bind_logger, setup_logging, setup_logging_from_args

__all__ = ["ContextLoggerAdapter", "add_logging_arguments", "bind_logger", "setup_logging", "setup_logging_from_args"]
