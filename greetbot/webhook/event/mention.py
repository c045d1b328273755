"""Text extraction for ``app_mention`` events.

Slack delivers the message layout as rich text blocks. For a plain mention the
user-authored text sits at a fixed position:

.. code-block:: json

    {
      "type": "app_mention",
      "blocks": [
        {
          "type": "rich_text",
          "elements": [
            {
              "type": "rich_text_section",
              "elements": [
                {"type": "user", "user_id": "U999"},
                {"type": "text", "text": " hello there"}
              ]
            }
          ]
        }
      ]
    }

:func:`extract_mention_text` walks that path and reports the first place the
payload diverges from it as an :class:`UnexpectedShapeError`.
"""

from __future__ import annotations

from typing import Any, Final, Sequence, Union

from greetbot.types import SlackEventPayload

__all__: list[str] = [
    "MENTION_TEXT_PATH",
    "UnexpectedShapeError",
    "extract_at",
    "extract_mention_text",
]

PathStep = Union[str, int]

MENTION_TEXT_PATH: Final[tuple[PathStep, ...]] = ("blocks", 0, "elements", 0, "elements", 1, "text")


class UnexpectedShapeError(ValueError):
    """The payload does not have the structure the extractor walks."""

    def __init__(self, path: str, expected: str) -> None:
        super().__init__(f"unexpected payload shape at {path or '$'}: expected {expected}")
        self.path = path
        self.expected = expected


def _render(path: Sequence[PathStep]) -> str:
    rendered = "$"
    for step in path:
        rendered += f"[{step}]" if isinstance(step, int) else f".{step}"
    return rendered


def extract_at(document: Any, path: Sequence[PathStep]) -> Any:
    """Follow ``path`` through nested objects and arrays.

    String steps index objects and integer steps index arrays.

    Raises
    ------
    UnexpectedShapeError
        If a container has the wrong type or lacks the requested key or index
    """
    current = document
    for depth, step in enumerate(path):
        where = _render(path[:depth])
        if isinstance(step, int):
            if not isinstance(current, list):
                raise UnexpectedShapeError(where, "array")
            if step >= len(current):
                raise UnexpectedShapeError(where, f"array with at least {step + 1} elements")
            current = current[step]
        else:
            if not isinstance(current, dict):
                raise UnexpectedShapeError(where, "object")
            if step not in current:
                raise UnexpectedShapeError(where, f"object with key {step!r}")
            current = current[step]
    return current


def extract_mention_text(event: SlackEventPayload) -> str:
    """Return the user-authored text of an ``app_mention`` event."""
    text = extract_at(event, MENTION_TEXT_PATH)
    if not isinstance(text, str):
        raise UnexpectedShapeError(_render(MENTION_TEXT_PATH), "string")
    return text
