"""Unit tests for the greetbot entrypoint."""

import logging
import os
from unittest.mock import AsyncMock, patch

import pytest

from greetbot.entry import log_configuration, main
from greetbot.lifecycle.manager import ServerStartupError
from greetbot.settings import Settings


@pytest.fixture
def mock_logging():
    with (
        patch("greetbot.entry.setup_logging") as mock_setup,
        patch("greetbot.entry.setup_logging_from_args") as mock_bootstrap,
    ):
        yield mock_setup, mock_bootstrap


@pytest.fixture
def mock_run_server():
    with patch("greetbot.entry.run_server", new_callable=AsyncMock) as mock_run:
        yield mock_run


class TestMain:
    """Test the entrypoint flow with the server mocked out."""

    def test_runs_server_with_env_port(self, clean_env, mock_logging, mock_run_server):
        clean_env.setenv("PORT", "4000")

        assert main(["--no-env-file"]) == 0

        mock_run_server.assert_awaited_once()
        kwargs = mock_run_server.await_args.kwargs
        assert kwargs["port"] == 4000
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["grace_period"] == 25.0

    def test_cli_port_overrides_env(self, clean_env, mock_logging, mock_run_server):
        clean_env.setenv("PORT", "4000")

        assert main(["--no-env-file", "--port", "5000", "--host", "127.0.0.1"]) == 0

        kwargs = mock_run_server.await_args.kwargs
        assert kwargs["port"] == 5000
        assert kwargs["host"] == "127.0.0.1"

    def test_invalid_port_exits_with_error(self, clean_env, mock_logging, mock_run_server, caplog):
        clean_env.setenv("PORT", "not-a-number")

        with caplog.at_level(logging.ERROR, logger="greetbot"):
            assert main(["--no-env-file"]) == 1

        mock_run_server.assert_not_called()
        assert "failed to load config" in caplog.text

    def test_bind_failure_exits_with_error(self, mock_logging, mock_run_server, caplog):
        mock_run_server.side_effect = ServerStartupError("failed to open HTTP socket on 0.0.0.0:3000: in use")

        with caplog.at_level(logging.CRITICAL, logger="greetbot"):
            assert main(["--no-env-file"]) == 1

        assert "failed to run http server" in caplog.text

    def test_log_level_from_settings(self, clean_env, mock_logging, mock_run_server):
        mock_setup, mock_bootstrap = mock_logging
        clean_env.setenv("LOG_LEVEL", "warn")

        main(["--no-env-file"])

        mock_bootstrap.assert_called_once()
        assert mock_setup.call_args.kwargs["level"] == "WARNING"

    def test_cli_log_level_wins(self, clean_env, mock_logging, mock_run_server):
        mock_setup, _ = mock_logging
        clean_env.setenv("LOG_LEVEL", "warn")

        main(["--no-env-file", "--log-level", "debug"])

        assert mock_setup.call_args.kwargs["level"] == "DEBUG"

    def test_loads_env_file_and_erases_secrets(self, clean_env, tmp_path, mock_logging, mock_run_server):
        env_file = tmp_path / ".env"
        env_file.write_text("PORT=4567\nSLACK_SIGNING_SECRET=from-dotenv\n", encoding="utf-8")
        # registered with monkeypatch so the values loaded from the file are undone
        clean_env.setenv("PORT", "1")
        clean_env.setenv("SLACK_SIGNING_SECRET", "placeholder")

        assert main(["--env-file", str(env_file)]) == 0

        assert mock_run_server.await_args.kwargs["port"] == 4567
        assert "SLACK_SIGNING_SECRET" not in os.environ

    def test_missing_env_file_is_not_an_error(self, tmp_path, mock_logging, mock_run_server):
        assert main(["--env-file", str(tmp_path / "absent.env")]) == 0


class TestLogConfiguration:
    def test_logs_non_secret_values(self, caplog):
        settings = Settings(
            heroku_app_name="greetbot-prod",
            slack_client_id="123.456",
            slack_request_secret="do-not-log",
        )

        with caplog.at_level(logging.INFO, logger="greetbot.test.entry"):
            log_configuration(settings, logging.getLogger("greetbot.test.entry"))

        assert "configuration values env=development app=greetbot-prod" in caplog.text
        assert "slack_client_id=123.456" in caplog.text
        assert "do-not-log" not in caplog.text
