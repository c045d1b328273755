"""greetbot server entrypoint.

Loads configuration, sets up logging, builds the webhook app and runs it under
the :class:`~greetbot.lifecycle.manager.LifecycleManager` until a termination
signal arrives.

Quick Start Examples
====================

.. code-block:: bash

    # Run with configuration from the environment (and .env if present)
    python -m greetbot

    # Custom port and debug logging
    python -m greetbot --port 8080 --log-level DEBUG

    # Skip loading .env file
    greetbot --no-env-file

Exit Status
===========
- ``0``: the server shut down after a signal, even if draining timed out
- ``1``: invalid configuration or the socket could not be bound
"""

from __future__ import annotations

import asyncio
import logging
import pathlib
from typing import Final, Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from pydantic import ValidationError

from greetbot.lifecycle.manager import DEFAULT_GRACE_PERIOD, LifecycleManager, ServerStartupError
from greetbot.logging.config import ContextLoggerAdapter, setup_logging, setup_logging_from_args
from greetbot.settings import Settings, load_settings
from greetbot.webhook.server import create_slack_app

from .cli.options import _parse_args

__all__: list[str] = [
    "log_configuration",
    "main",
    "run_server",
]

_LOG: Final[logging.Logger] = logging.getLogger("greetbot")


def log_configuration(settings: Settings, logger: logging.Logger | ContextLoggerAdapter) -> None:
    """Log the non-secret configuration values once at startup."""
    logger.info(
        "configuration values env=%s app=%s dyno_id=%s commit=%s slack_client_id=%s log_level=%s",
        settings.env.value,
        settings.heroku_app_name,
        settings.heroku_dyno_id,
        settings.heroku_slug_commit,
        settings.slack_client_id,
        settings.log_level.value,
    )


async def run_server(
    app: FastAPI,
    host: str = "0.0.0.0",
    port: int = 3000,
    grace_period: float = DEFAULT_GRACE_PERIOD,
    logger: Optional[logging.Logger | ContextLoggerAdapter] = None,
) -> LifecycleManager:
    """Serve ``app`` until a termination signal has been handled.

    Parameters
    ----------
    app : FastAPI
        The webhook application
    host : str, optional
        Interface to bind. Default is "0.0.0.0".
    port : int, optional
        Port to bind. Default is 3000.
    grace_period : float, optional
        Seconds in-flight requests get to finish once shutdown starts.
    logger : Optional[logging.Logger | ContextLoggerAdapter], optional
        Base logger for the lifecycle manager.

    Returns
    -------
    LifecycleManager
        The stopped manager, carrying ``serve_error`` and ``shutdown_error``

    Raises
    ------
    ServerStartupError
        If the socket cannot be bound
    """
    manager = LifecycleManager(app, host=host, port=port, grace_period=grace_period, logger=logger or _LOG)
    await manager.run()
    return manager


def main(argv: Optional[list[str]] = None) -> int:
    """Run the webhook receiver as a standalone application.

    Parameters
    ----------
    argv : Optional[list[str]], optional
        Command-line arguments to parse. If None, uses sys.argv.

    Returns
    -------
    int
        Process exit status
    """
    args = _parse_args(argv)

    # Bootstrap logging so configuration problems are visible
    setup_logging_from_args(args)

    # Load environment variables from .env file if not disabled
    if not args.no_env_file:
        env_path = pathlib.Path(args.env_file)
        if env_path.exists():
            _LOG.info(f"Loading environment variables from {env_path.resolve()}")
            load_dotenv(dotenv_path=env_path, override=True)
        else:
            _LOG.debug(f"Environment file not found: {env_path.resolve()}")

    overrides = {"port": args.port} if args.port is not None else {}
    try:
        settings = load_settings(**overrides)
    except ValidationError as e:
        _LOG.error("failed to load config: %s", e)
        return 1

    setup_logging(
        level=args.log_level or settings.log_level.value,
        log_file=args.log_file,
        log_format=args.log_format,
    )
    log_configuration(settings, _LOG)

    app = create_slack_app(settings, _LOG)
    try:
        asyncio.run(run_server(app, host=args.host, port=settings.port, grace_period=args.grace_period, logger=_LOG))
    except ServerStartupError as e:
        _LOG.critical("failed to run http server: %s", e)
        return 1

    return 0
