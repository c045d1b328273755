"""
Slack event parsing and dispatch package.

This package turns an admitted webhook body into a routing view and routes
``event_callback`` payloads to their handlers.
"""

from .dispatcher import DispatchResult, EventDispatcher
from .mention import UnexpectedShapeError, extract_mention_text
from .model import EventKind, EventParseError, SlackEvent, parse_event

__all__ = [
    "DispatchResult",
    "EventDispatcher",
    "EventKind",
    "EventParseError",
    "SlackEvent",
    "UnexpectedShapeError",
    "extract_mention_text",
    "parse_event",
]
