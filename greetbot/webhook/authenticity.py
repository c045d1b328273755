"""Slack request authenticity checks.

Slack signs each request with ``v0=HMAC_SHA256(secret, "v0:<timestamp>:<body>")``
and sends the result in ``X-Slack-Signature`` alongside
``X-Slack-Request-Timestamp``. The signature is recomputed over the raw body
bytes and compared in constant time; timestamps outside a five minute window
are rejected to stop replays.

References
==========
- Verifying requests from Slack: https://api.slack.com/authentication/verifying-requests-from-slack
"""

from __future__ import annotations

import hmac
import logging
import time
from typing import Any, Final, Mapping, Optional

from slack_sdk.signature import Clock, SignatureVerifier

__all__: list[str] = [
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "FixedClock",
    "verify_signature",
    "verify_token",
]

_LOG: Final[logging.Logger] = logging.getLogger(__name__)

SIGNATURE_HEADER: Final[str] = "X-Slack-Signature"
TIMESTAMP_HEADER: Final[str] = "X-Slack-Request-Timestamp"


class FixedClock(Clock):
    """Clock pinned to a given instant, used to evaluate the replay window deterministically."""

    def __init__(self, now: float) -> None:
        self._now = now

    def now(self) -> float:
        return self._now


def verify_signature(
    timestamp: Optional[str],
    body: bytes | str,
    secret: Optional[str],
    signature: Optional[str],
    now: Optional[float] = None,
) -> bool:
    """Check a Slack request signature.

    Parameters
    ----------
    timestamp : Optional[str]
        Value of the ``X-Slack-Request-Timestamp`` header
    body : bytes | str
        The raw request body exactly as received
    secret : Optional[str]
        The signing secret shared with Slack
    signature : Optional[str]
        Value of the ``X-Slack-Signature`` header
    now : Optional[float]
        Current UNIX time; defaults to :func:`time.time`

    Returns
    -------
    bool
        True when the signature matches and the timestamp is within the replay window
    """
    if not secret or not signature or not timestamp:
        return False

    # SignatureVerifier calls int() on the timestamp; anything but digits is a reject
    if not timestamp.isdigit():
        return False
    # hmac.compare_digest raises TypeError on non-ASCII str; a real signature is hex
    if not signature.isascii():
        return False

    verifier = SignatureVerifier(secret, clock=FixedClock(time.time() if now is None else now))
    try:
        return verifier.is_valid(body=body, timestamp=timestamp, signature=signature)
    except (ValueError, TypeError):
        # Body bytes that are not valid UTF-8 cannot have been signed by Slack
        return False


def verify_token(document: Mapping[str, Any], expected_token: Optional[str]) -> bool:
    """Check the legacy verification token carried in the event body.

    The check only applies when a token is configured and the document carries
    a ``token`` field; newer Slack apps stop sending it.
    """
    if not expected_token or "token" not in document:
        return True

    supplied = document.get("token")
    if not isinstance(supplied, str):
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected_token.encode("utf-8"))
