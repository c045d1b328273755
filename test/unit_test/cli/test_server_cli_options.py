"""Unit tests for greetbot command-line options."""

import argparse

import pytest
from pydantic import ValidationError

from greetbot.cli import ServerCliOptions, _parse_args


class TestParseArgs:
    """Test parsing argv into ServerCliOptions."""

    def test_defaults(self):
        opts = _parse_args([])

        assert isinstance(opts, ServerCliOptions)
        assert opts.host == "0.0.0.0"
        assert opts.port is None
        assert opts.grace_period == 25.0
        assert opts.env_file == ".env"
        assert opts.no_env_file is False
        assert opts.log_level is None

    def test_all_options(self):
        opts = _parse_args(
            [
                "--host",
                "127.0.0.1",
                "--port",
                "8080",
                "--grace-period",
                "5",
                "--env-file",
                "config/.env",
                "--no-env-file",
                "--log-level",
                "debug",
                "--log-file",
                "logs/greetbot.log",
                "--log-format",
                "%(message)s",
            ]
        )

        assert opts.host == "127.0.0.1"
        assert opts.port == 8080
        assert opts.grace_period == 5.0
        assert opts.env_file == "config/.env"
        assert opts.no_env_file is True
        assert opts.log_level == "DEBUG"
        assert opts.log_file == "logs/greetbot.log"
        assert opts.log_format == "%(message)s"

    def test_non_numeric_port(self):
        with pytest.raises(SystemExit):
            _parse_args(["--port", "http"])

    def test_port_out_of_range(self):
        with pytest.raises(ValidationError):
            _parse_args(["--port", "70000"])

    def test_grace_period_must_be_positive(self):
        with pytest.raises(ValidationError):
            _parse_args(["--grace-period", "0"])


class TestServerCliOptions:
    def test_deserialize_ignores_unknown_attributes(self):
        ns = argparse.Namespace(host="localhost", port=3001, unrelated="x")

        opts = ServerCliOptions.deserialize(ns)

        assert opts.host == "localhost"
        assert opts.port == 3001

    def test_frozen(self):
        opts = ServerCliOptions()

        with pytest.raises(ValidationError):
            opts.port = 1
