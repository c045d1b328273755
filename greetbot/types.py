"""
Type definitions for the greetbot package.
"""

from __future__ import annotations

from typing import Any, Dict, TypeAlias

__all__ = [
    "JSONDict",
    "SlackEventPayload",
]

JSONDict: TypeAlias = Dict[str, Any]
"""JSON object represented as a dictionary."""

SlackEventPayload: TypeAlias = Dict[str, Any]
"""The nested ``event`` object of an Events API callback."""
