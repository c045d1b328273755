"""Slack Events API envelope parsing.

Only the fields needed for routing are extracted from an admitted JSON
document. Everything else in the envelope is ignored.

Payload Shape Notes
===================
- url_verification

  .. code-block:: json

    {"type": "url_verification", "token": "...", "challenge": "3eZbrw1aBm2rZgRNFdxV2595E9CY3gmdALWMmHkvFXO7tYXAYM8P"}

- event_callback

  .. code-block:: json

    {
      "type": "event_callback",
      "event_id": "Ev0123ABCD",
      "event_time": 1712345678,
      "event": {"type": "app_mention", "user": "U123", "text": "<@U999> hi", "blocks": []}
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from greetbot.types import JSONDict

__all__: list[str] = [
    "EventKind",
    "EventParseError",
    "SlackEvent",
    "get_json_int",
    "get_json_object",
    "get_json_string",
    "parse_event",
]


class EventKind(str, Enum):
    """Envelope ``type`` values with dedicated handling."""

    URL_VERIFICATION = "url_verification"
    EVENT_CALLBACK = "event_callback"


class EventParseError(ValueError):
    """A required envelope field is missing or has the wrong JSON type."""

    def __init__(self, field_name: str, reason: str) -> None:
        super().__init__(f"failed to get field {field_name}: {reason}")
        self.field = field_name
        self.reason = reason


@dataclass(frozen=True, slots=True, kw_only=True)
class SlackEvent:
    """
    Routing view of an admitted Slack webhook body.

    :param type: the envelope type, e.g. ``url_verification`` or ``event_callback``
    :param event_id: unique delivery id (absent for ``url_verification``)
    :param event_time: UNIX time the event was dispatched (absent for ``url_verification``)
    :param challenge: the handshake token (``url_verification`` only)
    :param payload: the nested ``event`` object (absent for ``url_verification``)
    """

    type: str
    event_id: Optional[str] = None
    event_time: Optional[int] = None
    challenge: Optional[str] = None
    payload: JSONDict = field(default_factory=dict, repr=False)

    @property
    def is_url_verification(self) -> bool:
        return self.type == EventKind.URL_VERIFICATION.value

    @property
    def payload_type(self) -> Optional[str]:
        """The inner ``event.type`` if it is a string."""
        value = self.payload.get("type")
        return value if isinstance(value, str) else None


def get_json_string(document: Mapping[str, Any], key: str) -> str:
    if key not in document:
        raise EventParseError(key, "key does not exist")
    value = document[key]
    if not isinstance(value, str):
        raise EventParseError(key, f"value doesn't contain string; it contains {type(value).__name__}")
    return value


def get_json_int(document: Mapping[str, Any], key: str) -> int:
    if key not in document:
        raise EventParseError(key, "key does not exist")
    value = document[key]
    # bool is an int subclass but never a valid timestamp
    if isinstance(value, bool) or not isinstance(value, int):
        raise EventParseError(key, f"value doesn't contain integer; it contains {type(value).__name__}")
    return value


def get_json_object(document: Mapping[str, Any], key: str) -> JSONDict:
    if key not in document:
        raise EventParseError(key, "key does not exist")
    value = document[key]
    if not isinstance(value, dict):
        raise EventParseError(key, f"value doesn't contain object; it contains {type(value).__name__}")
    return value


def parse_event(document: Any) -> SlackEvent:
    """Extract the routing fields from an admitted JSON document.

    Parameters
    ----------
    document : Any
        The parsed JSON body

    Returns
    -------
    SlackEvent
        The routing view of the envelope

    Raises
    ------
    EventParseError
        If ``type`` is missing, or a verification lacks ``challenge``, or any
        other kind lacks ``event_id``, ``event_time`` or the ``event`` object
    """
    if not isinstance(document, dict):
        raise EventParseError("type", "document is not a JSON object")

    event_type = get_json_string(document, "type")
    if event_type == EventKind.URL_VERIFICATION.value:
        return SlackEvent(type=event_type, challenge=get_json_string(document, "challenge"))

    return SlackEvent(
        type=event_type,
        event_id=get_json_string(document, "event_id"),
        event_time=get_json_int(document, "event_time"),
        payload=get_json_object(document, "event"),
    )
