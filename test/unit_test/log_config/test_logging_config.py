"""Unit tests for the greetbot logging configuration."""

import argparse
import logging

import pytest

from greetbot.logging.config import (
    DEFAULT_LOG_FORMAT,
    ContextLoggerAdapter,
    add_logging_arguments,
    bind_logger,
    setup_logging,
    setup_logging_from_args,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    uvicorn_loggers = [logging.getLogger(name) for name in ("uvicorn", "uvicorn.access")]
    uvicorn_state = [(lg, list(lg.handlers), lg.level, lg.propagate) for lg in uvicorn_loggers]
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for lg, lg_handlers, lg_level, lg_propagate in uvicorn_state:
        lg.handlers[:] = lg_handlers
        lg.setLevel(lg_level)
        lg.propagate = lg_propagate


class TestContextLoggerAdapter:
    """Test context binding on the adapter."""

    def test_bind_returns_new_adapter(self):
        base = bind_logger(logging.getLogger("greetbot.test"), context="event_handler")
        child = base.bind(request_id="abc")

        assert child is not base
        assert base.extra == {"context": "event_handler"}
        assert child.extra == {"context": "event_handler", "request_id": "abc"}

    def test_bind_logger_accepts_adapter(self):
        base = bind_logger(logging.getLogger("greetbot.test"), a=1)
        child = bind_logger(base, b=2)

        assert isinstance(child, ContextLoggerAdapter)
        assert child.extra == {"a": 1, "b": 2}

    def test_context_is_appended(self, caplog):
        logger = bind_logger(logging.getLogger("greetbot.test"), context="event_handler", request_id="abc")

        with caplog.at_level(logging.INFO, logger="greetbot.test"):
            logger.info("accepted event")

        assert caplog.records[-1].getMessage() == "accepted event context=event_handler request_id=abc"

    def test_none_values_are_skipped(self, caplog):
        logger = bind_logger(logging.getLogger("greetbot.test"), event_id=None, context="x")

        with caplog.at_level(logging.INFO, logger="greetbot.test"):
            logger.info("hello")

        assert caplog.records[-1].getMessage() == "hello context=x"

    def test_percent_in_context_is_safe(self, caplog):
        logger = bind_logger(logging.getLogger("greetbot.test"), request_id="100%s")

        with caplog.at_level(logging.INFO, logger="greetbot.test"):
            logger.info("method=%s", "GET")

        assert caplog.records[-1].getMessage() == "method=GET request_id=100%s"

    def test_mapping_args(self, caplog):
        logger = bind_logger(logging.getLogger("greetbot.test"), context="x")

        with caplog.at_level(logging.INFO, logger="greetbot.test"):
            logger.info("%(event_type)s handled in %(elapsed)dms", {"event_type": "app_mention", "elapsed": 12})

        assert caplog.records[-1].getMessage() == "app_mention handled in 12ms context=x"

    def test_disabled_level_is_not_emitted(self, caplog):
        logger = bind_logger(logging.getLogger("greetbot.test"))

        with caplog.at_level(logging.WARNING, logger="greetbot.test"):
            logger.debug("quiet %s", "please")

        assert caplog.records == []


class TestSetupLogging:
    """Test process-wide handler configuration."""

    def test_sets_levels(self, restore_root_logger):
        setup_logging("debug")

        assert logging.getLogger("greetbot").level == logging.DEBUG
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_writes_log_file(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "greetbot.log"

        setup_logging("INFO", log_file=str(log_file), log_format="%(levelname)s %(message)s")
        logging.getLogger("greetbot.test").info("written to file")
        for handler in logging.getLogger("greetbot").handlers:
            handler.flush()

        assert "INFO written to file" in log_file.read_text(encoding="utf-8")

    def test_from_args_uses_default_level(self, restore_root_logger):
        setup_logging_from_args(argparse.Namespace(log_level=None, log_file=None, log_format=None), "WARNING")

        assert logging.getLogger("greetbot").level == logging.WARNING


class TestLoggingArguments:
    """Test the shared CLI logging options."""

    def test_defaults(self):
        parser = add_logging_arguments(argparse.ArgumentParser())
        args = parser.parse_args([])

        assert args.log_level is None
        assert args.log_file is None
        assert args.log_format is None

    def test_level_is_case_insensitive(self):
        parser = add_logging_arguments(argparse.ArgumentParser())

        assert parser.parse_args(["--log-level", "debug"]).log_level == "DEBUG"

    def test_invalid_level(self):
        parser = add_logging_arguments(argparse.ArgumentParser())

        with pytest.raises(SystemExit):
            parser.parse_args(["--log-level", "verbose"])

    def test_default_format_has_logger_name(self):
        assert "%(name)s" in DEFAULT_LOG_FORMAT
