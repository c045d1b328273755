"""Command-line options for the greetbot entrypoint."""

from .models import ServerCliOptions
from .options import _parse_args

__all__ = ["ServerCliOptions", "_parse_args"]
