"""Pydantic models for greetbot CLI options.

Defines the typed configuration model produced by the command-line parser.

Examples
--------
.. code-block:: python

    from greetbot.cli.options import _parse_args

    opts = _parse_args(["--port", "3001"])  # ServerCliOptions
    assert opts.port == 3001
"""

from __future__ import annotations

import argparse

from pydantic import BaseModel, ConfigDict, Field


class ServerCliOptions(BaseModel):
    """Validated CLI options for the greetbot entrypoint.

    Fields
    ------
    host : str
        Host to bind (default: 0.0.0.0)
    port : int | None
        Port to listen on; overrides the ``PORT`` environment variable when given
    grace_period : float
        Seconds in-flight requests get to finish on shutdown (default: 25)
    log_level : str | None
        Logging level; overrides ``LOG_LEVEL`` when given
    log_file : str | None
        Path to log file (optional)
    log_format : str | None
        Log message format (optional)
    env_file : str
        Path to .env file for environment variable loading
    no_env_file : bool
        Disable loading .env file when True
    """

    host: str = "0.0.0.0"
    port: int | None = Field(None, ge=0, le=65535)
    grace_period: float = Field(25.0, gt=0)
    log_level: str | None = None
    log_file: str | None = None
    log_format: str | None = None

    env_file: str = ".env"
    no_env_file: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore")

    @classmethod
    def deserialize(cls, ns: argparse.Namespace) -> "ServerCliOptions":
        """Build a validated options object from argparse namespace."""
        data = {name: getattr(ns, name) for name in cls.model_fields.keys() if hasattr(ns, name)}
        return cls(**data)
