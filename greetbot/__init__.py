"""greetbot: Slack Events API webhook receiver with graceful shutdown."""

__version__ = "0.1.0"
