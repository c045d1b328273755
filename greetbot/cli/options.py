"""Command-line argument parsing for greetbot.

Examples
--------
.. code-block:: python

    from greetbot.cli.options import _parse_args

    opts = _parse_args(["--port", "8080", "--no-env-file"])  # ServerCliOptions
    print(opts.port, opts.no_env_file)
"""

from __future__ import annotations

import argparse

from greetbot.logging.config import add_logging_arguments

from .models import ServerCliOptions


def _parse_args(argv: list[str] | None = None) -> ServerCliOptions:
    """Parse CLI args and build `ServerCliOptions`.

    Parameters
    ----------
    argv : list[str] | None, optional
        Argument list to parse. If None, uses sys.argv.

    Returns
    -------
    ServerCliOptions
        Validated immutable options for starting the server.
    """
    parser = argparse.ArgumentParser(description="Run the greetbot Slack webhook receiver")
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: PORT environment variable, else 3000)",
    )
    parser.add_argument(
        "--grace-period",
        type=float,
        default=25.0,
        help="Seconds in-flight requests get to finish on shutdown (default: 25)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to .env file (default: .env in current directory)",
    )
    parser.add_argument(
        "--no-env-file",
        action="store_true",
        help="Disable loading from .env file",
    )

    # Add centralized logging arguments
    parser = add_logging_arguments(parser)

    return ServerCliOptions.deserialize(parser.parse_args(argv))
