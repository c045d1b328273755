"""
Global pytest configuration for the greetbot test suite.

Provides an isolated environment for settings, a reset web factory and a
helper that signs request bodies the way Slack does.
"""

import logging
import time
from typing import Callable, Dict, Optional

import pytest
from slack_sdk.signature import SignatureVerifier

from greetbot.settings import Settings
from greetbot.webhook.app import web_factory

TEST_SIGNING_SECRET = "8f742231b10e8888abcd99yyyzzz85a5"

# Every environment variable Settings reads; cleared so the host environment never leaks in
_SETTINGS_ENV_VARS = (
    "PORT",
    "LOG_LEVEL",
    "GREETBOT_LOG_LEVEL",
    "ENV",
    "HEROKU_APP_ID",
    "HEROKU_APP_NAME",
    "HEROKU_DYNO_ID",
    "HEROKU_SLUG_COMMIT",
    "SLACK_APP_ID",
    "SLACK_TEAM_ID",
    "SLACK_CLIENT_ID",
    "SLACK_REQUEST_TOKEN",
    "SLACK_VERIFICATION_TOKEN",
    "SLACK_CLIENT_SECRET",
    "SLACK_REQUEST_SECRET",
    "SLACK_SIGNING_SECRET",
    "SLACK_BOT_ACCESS_TOKEN",
    "SLACK_BOT_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every greetbot variable from the environment for the test."""
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def reset_web_factory():
    """Give every test a fresh FastAPI singleton."""
    web_factory.reset()
    yield
    web_factory.reset()


@pytest.fixture(autouse=True)
def restore_greetbot_logger():
    """Undo handler changes made by ``setup_logging`` so caplog keeps working."""
    logger = logging.getLogger("greetbot")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def settings() -> Settings:
    """Settings with a known signing secret and no verification token."""
    return Settings(slack_request_secret=TEST_SIGNING_SECRET, port=0)


@pytest.fixture
def sign() -> Callable[..., Dict[str, str]]:
    """Return a helper producing Slack signature headers for a body."""

    def _sign(
        body: bytes,
        timestamp: Optional[str] = None,
        secret: str = TEST_SIGNING_SECRET,
        content_type: str = "application/json",
    ) -> Dict[str, str]:
        ts = timestamp if timestamp is not None else str(int(time.time()))
        signature = SignatureVerifier(secret).generate_signature(timestamp=ts, body=body)
        return {
            "Content-Type": content_type,
            "X-Slack-Request-Timestamp": ts,
            "X-Slack-Signature": signature,
        }

    return _sign
