"""Base utilities for greetbot server factories.

This package exports the base server factory interface that the web app
factory inherits.
"""

from .app import BaseServerFactory

__all__ = ["BaseServerFactory"]
