"""
FastAPI application factory for the greetbot webhook receiver.

The factory owns the single FastAPI instance of the process. Routes are
registered by :func:`greetbot.webhook.server.create_slack_app`.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

from fastapi import FastAPI

from greetbot import __version__
from greetbot._base import BaseServerFactory
from greetbot.settings import Settings

from .middleware import add_request_id

_LOG: Final[logging.Logger] = logging.getLogger(__name__)


class WebServerFactory(BaseServerFactory[FastAPI]):
    @staticmethod
    def build(**kwargs) -> FastAPI:
        """
        Create and configure the web API server.

        Args:
            **kwargs:
                settings: The immutable settings snapshot, stored on ``app.state``

        Returns:
            Configured FastAPI server instance
        """
        settings: Optional[Settings] = kwargs.get("settings", None)

        app = FastAPI(
            title="greetbot",
            description="Slack Events API webhook receiver",
            version=__version__,
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
        )
        app.state.settings = settings

        # Correlation ids for every request, including liveness probes
        app.middleware("http")(add_request_id)
        _LOG.debug("Created web server instance")
        return app


web_factory: Final[Type[WebServerFactory]] = WebServerFactory
