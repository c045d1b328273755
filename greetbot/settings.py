"""Runtime configuration for the greetbot webhook receiver.

Values are read once from the process environment into an immutable
:class:`Settings` snapshot. Secrets are removed from ``os.environ`` right after
the snapshot is built so child processes and crash dumps never see them.

Environment Variables
=====================
- ``PORT``: TCP port to listen on (default: 3000; 0 picks a free port)
- ``LOG_LEVEL`` / ``GREETBOT_LOG_LEVEL``: logging level (default: info)
- ``ENV``: deployment environment (development, testing, staging, production)
- ``HEROKU_APP_ID`` / ``HEROKU_APP_NAME`` / ``HEROKU_DYNO_ID`` / ``HEROKU_SLUG_COMMIT``: dyno metadata
- ``SLACK_APP_ID`` / ``SLACK_TEAM_ID`` / ``SLACK_CLIENT_ID``: Slack app identifiers
- ``SLACK_REQUEST_SECRET`` / ``SLACK_SIGNING_SECRET``: HMAC signing secret
- ``SLACK_REQUEST_TOKEN`` / ``SLACK_VERIFICATION_TOKEN``: legacy verification token
- ``SLACK_CLIENT_SECRET``: OAuth client secret
- ``SLACK_BOT_ACCESS_TOKEN`` / ``SLACK_BOT_TOKEN``: bot access token
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Final, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__: list[str] = [
    "Environment",
    "LogLevel",
    "Settings",
    "SECRET_ENV_VARS",
    "load_settings",
]

_LOG: Final[logging.Logger] = logging.getLogger(__name__)

# Every variable name a secret may be read from; all of them are erased after loading.
SECRET_ENV_VARS: Final[tuple[str, ...]] = (
    "SLACK_CLIENT_SECRET",
    "SLACK_REQUEST_SECRET",
    "SLACK_SIGNING_SECRET",
    "SLACK_BOT_ACCESS_TOKEN",
    "SLACK_BOT_TOKEN",
)


class Environment(str, Enum):
    """Deployment environment the process runs in."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Supported logging levels."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"
    NOTSET = "NOTSET"


# Level names used by other logging ecosystems (zerolog, logrus) mapped onto ours.
_LEVEL_ALIASES: Final[dict[str, LogLevel]] = {
    "TRACE": LogLevel.DEBUG,
    "WARN": LogLevel.WARNING,
    "FATAL": LogLevel.CRITICAL,
    "PANIC": LogLevel.CRITICAL,
    "DISABLED": LogLevel.NOTSET,
}


class Settings(BaseSettings):
    """
    Immutable configuration snapshot for the webhook receiver.
    Loads values from environment variables only; ``.env`` files are applied
    to the environment by the CLI before this model is built.
    """

    model_config = SettingsConfigDict(
        env_file=None,
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_ignore_empty=True,
        populate_by_name=True,
    )

    port: int = Field(default=3000, ge=0, le=65535)
    log_level: LogLevel = Field(default=LogLevel.INFO, validation_alias=AliasChoices("LOG_LEVEL", "GREETBOT_LOG_LEVEL"))
    env: Environment = Field(default=Environment.DEVELOPMENT)

    # Heroku Labs dyno metadata, informational only
    heroku_app_id: Optional[str] = Field(default=None)
    heroku_app_name: Optional[str] = Field(default=None)
    heroku_dyno_id: Optional[str] = Field(default=None)
    heroku_slug_commit: Optional[str] = Field(default=None)

    # Slack app credentials
    slack_app_id: Optional[str] = Field(default=None)
    slack_team_id: Optional[str] = Field(default=None)
    slack_client_id: Optional[str] = Field(default=None)
    slack_request_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SLACK_REQUEST_TOKEN", "SLACK_VERIFICATION_TOKEN")
    )
    slack_client_secret: Optional[SecretStr] = Field(default=None)
    slack_request_secret: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("SLACK_REQUEST_SECRET", "SLACK_SIGNING_SECRET")
    )
    slack_bot_access_token: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("SLACK_BOT_ACCESS_TOKEN", "SLACK_BOT_TOKEN")
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v):
        """Accept level names case-insensitively, including zerolog-style aliases."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return LogLevel.INFO
        if isinstance(v, str):
            name = v.strip().upper()
            return _LEVEL_ALIASES.get(name, name)
        return v

    @field_validator("env", mode="before")
    @classmethod
    def parse_env(cls, v):
        """Unknown environment names fall back to development."""
        if isinstance(v, Environment):
            return v
        if isinstance(v, str):
            try:
                return Environment(v.strip().lower())
            except ValueError:
                return Environment.DEVELOPMENT
        return Environment.DEVELOPMENT

    @property
    def signing_secret(self) -> str | None:
        """The plain signing secret, or ``None`` when not configured."""
        if self.slack_request_secret is None:
            return None
        return self.slack_request_secret.get_secret_value() or None


def load_settings(**kwargs) -> Settings:
    """
    Build the settings snapshot and erase secrets from the environment.

    Parameters
    ----------
    **kwargs
        Explicit values that take precedence over the environment

    Returns
    -------
    Settings
        The immutable settings snapshot

    Raises
    ------
    pydantic.ValidationError
        If any environment value is invalid (for example a non-numeric ``PORT``)
    """
    try:
        settings = Settings(**kwargs)
    finally:
        # erase even when validation fails
        for name in SECRET_ENV_VARS:
            os.environ.pop(name, None)

    _LOG.debug("Loaded settings for environment %s", settings.env.value)
    return settings
