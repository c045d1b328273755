"""Slack webhook routes (FastAPI).

This module registers the HTTP surface of the receiver on the app created by
:data:`greetbot.webhook.app.web_factory`.

Routes
======
- ``GET /_ruok``: liveness probe, always ``200 imok``
- ``POST /slack/event``: Slack Events API ingestion

Request Flow
============
1. The admission gate checks method, content type, body size, JSON and signature
2. The envelope is parsed; field errors answer 422
3. ``url_verification`` echoes the challenge as ``plain/text``
4. Everything else is acknowledged with an empty 200, then dispatched in the
   background; dispatch failures are only logged

Quick Examples
==============

.. code-block:: bash

    # Liveness
    curl http://localhost:3000/_ruok

    # URL verification
    curl -X POST http://localhost:3000/slack/event \\
         -H "Content-Type: application/json" \\
         -H "X-Slack-Request-Timestamp: $(date +%s)" \\
         -H "X-Slack-Signature: v0=..." \\
         -d '{"type": "url_verification", "challenge": "abc123"}'
"""

from __future__ import annotations

import logging
from typing import Final, Optional

from fastapi import BackgroundTasks, FastAPI, Request, Response, status
from fastapi.responses import PlainTextResponse

from greetbot.logging.config import ContextLoggerAdapter, bind_logger
from greetbot.settings import Settings

from .admission import UNPROCESSABLE_ENTITY, AdmissionRejection, admit
from .app import web_factory
from .event import EventDispatcher, EventParseError, SlackEvent, parse_event
from .middleware import request_id_of

__all__: list[str] = [
    "EVENT_PATH",
    "RUOK_PATH",
    "VERIFICATION_CONTENT_TYPE",
    "create_slack_app",
    "dispatch_event",
]

_LOG: Final[logging.Logger] = logging.getLogger(__name__)

RUOK_PATH: Final[str] = "/_ruok"
EVENT_PATH: Final[str] = "/slack/event"
VERIFICATION_CONTENT_TYPE: Final[str] = "plain/text"

# Every method is routed to the handler so the admission gate owns the 405 answer
_ALL_METHODS: Final[list[str]] = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


async def dispatch_event(dispatcher: EventDispatcher, event: SlackEvent, logger: ContextLoggerAdapter) -> None:
    """Dispatch an acknowledged event and log the outcome.

    Runs after the response has been sent, so nothing raised here may reach
    the caller.
    """
    try:
        result = await dispatcher.dispatch(event, logger)
    except Exception as e:
        logger.exception("Failed to process the event: %s", type(e).__name__)
        return

    if not result.ok:
        logger.error("Failed to process the event: %s", result.error)
    else:
        logger.debug("Processed event route=%s", result.route)


def create_slack_app(
    settings: Settings,
    logger: Optional[logging.Logger | ContextLoggerAdapter] = None,
    dispatcher: Optional[EventDispatcher] = None,
) -> FastAPI:
    """Create a FastAPI app for handling Slack events.

    Parameters
    ----------
    settings : Settings
        The immutable settings snapshot (signing secret, verification token)
    logger : Optional[logging.Logger | ContextLoggerAdapter]
        Base logger every request-scoped logger derives from
    dispatcher : Optional[EventDispatcher]
        Router for ``event_callback`` payloads

    Returns
    -------
    FastAPI
        The FastAPI app
    """
    app = web_factory.create(settings=settings)
    base_logger = bind_logger(logger or _LOG)
    dispatcher = dispatcher or EventDispatcher(base_logger)

    signing_secret = settings.signing_secret
    verification_token = settings.slack_request_token
    if not signing_secret:
        base_logger.warning("Slack signing secret is not set; every webhook request will be rejected")

    @app.api_route(RUOK_PATH, methods=["GET", "HEAD"], include_in_schema=False)
    async def ruok() -> PlainTextResponse:
        """Liveness probe."""
        return PlainTextResponse("imok")

    @app.api_route(EVENT_PATH, methods=_ALL_METHODS, include_in_schema=False)
    async def slack_event(request: Request, background_tasks: BackgroundTasks) -> Response:
        """Handle Slack Events API requests."""
        request_logger = base_logger.bind(context="event_handler", request_id=request_id_of(request))

        try:
            admitted = await admit(
                request,
                request_logger,
                signing_secret=signing_secret,
                verification_token=verification_token,
            )
        except AdmissionRejection as e:
            return Response(status_code=e.status_code, headers=e.headers)

        try:
            event = parse_event(admitted.document)
        except EventParseError as e:
            request_logger.error("failed to parse values from JSON document: %s", e)
            return Response(status_code=UNPROCESSABLE_ENTITY)

        if event.is_url_verification:
            request_logger.info("handling URL verification challenge")
            return Response(content=event.challenge, media_type=VERIFICATION_CONTENT_TYPE)

        event_logger = request_logger.bind(
            event_type=event.type,
            event_id=event.event_id,
            event_time=event.event_time,
        )
        event_logger.info("accepted event")
        background_tasks.add_task(dispatch_event, dispatcher, event, event_logger)
        return Response(status_code=status.HTTP_200_OK)

    return app
