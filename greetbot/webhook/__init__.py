"""Slack webhook subpackage.

Contains the FastAPI app factory, the admission gate, the authenticity checks,
and the event parser/dispatcher for Slack Events API requests.
"""
