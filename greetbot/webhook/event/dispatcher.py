"""Routing of admitted ``event_callback`` deliveries.

Dispatch happens after the HTTP response has been sent, so nothing here can
change what Slack sees. Every outcome is reported as a :class:`DispatchResult`
that the caller only logs.

Dispatch Rules
==============
- ``on_<type>()`` is called for the inner ``event['type']`` when defined
- Any other type goes to :py:meth:`EventDispatcher.on_unknown`, a silent accept
- A missing or non-string inner type is a failed result, not an exception
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Final, Optional

from greetbot.logging.config import ContextLoggerAdapter, bind_logger
from greetbot.types import SlackEventPayload

from .mention import UnexpectedShapeError, extract_mention_text
from .model import SlackEvent

__all__: list[str] = ["DispatchResult", "EventDispatcher"]

_LOG: Final[logging.Logger] = logging.getLogger(__name__)

UNKNOWN_ROUTE: Final[str] = "unknown"


@dataclass(frozen=True, slots=True, kw_only=True)
class DispatchResult:
    """Outcome of routing one event.

    :param route: the inner event type that was routed, or ``unknown``
    :param ok: False when the handler could not process the payload
    :param error: the failure, when ``ok`` is False
    :param text: the extracted mention text for ``app_mention`` events
    """

    route: str
    ok: bool = True
    error: Optional[Exception] = None
    text: Optional[str] = None


class EventDispatcher:
    """Route the nested ``event`` payload of a callback to an ``on_*`` method.

    Examples
    --------
    .. code-block:: python

        dispatcher = EventDispatcher()
        result = await dispatcher.dispatch(event)
        if not result.ok:
            logger.error("Failed to process the event: %s", result.error)
    """

    def __init__(self, logger: Optional[logging.Logger | ContextLoggerAdapter] = None) -> None:
        self._logger = bind_logger(logger or _LOG, context="event_dispatcher")

    async def dispatch(
        self, event: SlackEvent, logger: Optional[logging.Logger | ContextLoggerAdapter] = None
    ) -> DispatchResult:
        """Route ``event`` and return the outcome.

        Parameters
        ----------
        event : SlackEvent
            An admitted, parsed ``event_callback`` (or other non-verification kind)
        logger : Optional[logging.Logger | ContextLoggerAdapter]
            Request-scoped logger; defaults to the dispatcher's own

        Returns
        -------
        DispatchResult
            The route taken and whether processing succeeded
        """
        log = bind_logger(logger) if logger is not None else self._logger
        payload_type = event.payload_type
        if payload_type is None:
            error = ValueError("failed to get field event.type: missing or not a string")
            log.error("Error getting event type")
            return DispatchResult(route=UNKNOWN_ROUTE, ok=False, error=error)

        log = log.bind(payload_type=payload_type)
        handler = self._resolve(payload_type)
        try:
            return await handler(event.payload, log)
        except UnexpectedShapeError as e:
            return DispatchResult(route=payload_type, ok=False, error=e)

    async def on_app_mention(self, payload: SlackEventPayload, logger: ContextLoggerAdapter) -> DispatchResult:
        """Handle app_mention events.

        Notes
        -----
        - The text is read from the first rich text section, second element.
        - References: https://api.slack.com/events/app_mention
        """
        text = extract_mention_text(payload)
        logger.info("received app mention text_length=%d", len(text))
        logger.debug("app mention text: %s", text)
        return DispatchResult(route="app_mention", text=text)

    async def on_unknown(self, payload: SlackEventPayload, logger: ContextLoggerAdapter) -> DispatchResult:
        """Accept events with no matching handler without further action."""
        logger.debug("ignoring unhandled event type")
        return DispatchResult(route=UNKNOWN_ROUTE)

    def _resolve(
        self, payload_type: str
    ) -> Callable[[SlackEventPayload, ContextLoggerAdapter], Awaitable[DispatchResult]]:
        if payload_type.isidentifier():
            fn = getattr(self, f"on_{payload_type}", None)
            if fn is not None and callable(fn) and payload_type != "unknown":
                return fn
        return self.on_unknown
