"""Admission gate for inbound Slack webhook requests.

Every request to the events endpoint passes these checks in order, stopping at
the first failure:

1. HTTP method must be ``POST`` (405, ``Allow: POST``)
2. ``Content-Type`` must parse (400) and be ``application/json`` (415)
3. The body is read with a 2 MiB ceiling; larger bodies are truncated (500 on read error)
4. The body must be a JSON document (422)
5. The Slack signature and replay window must check out (401)

A failed check raises :class:`AdmissionRejection`, which the endpoint turns
into an empty-bodied response. Rejections are logged with their reason only;
request bodies never reach the logs.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Final, Optional

from fastapi import Request, status
from starlette.requests import ClientDisconnect

from .authenticity import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_signature, verify_token

__all__: list[str] = [
    "ACCEPTED_CONTENT_TYPE",
    "MAX_BODY_SIZE",
    "READ_TIMEOUT",
    "UNPROCESSABLE_ENTITY",
    "AdmissionRejection",
    "AdmittedRequest",
    "admit",
    "parse_media_type",
    "read_limited_body",
]

MAX_BODY_SIZE: Final[int] = 2 * 1024 * 1024
READ_TIMEOUT: Final[float] = 20.0
ACCEPTED_CONTENT_TYPE: Final[str] = "application/json; charset=utf-8"
UNPROCESSABLE_ENTITY: Final[int] = 422

_JSON_MEDIA_TYPE: Final[str] = "application/json"
_TSPECIALS: Final[frozenset[str]] = frozenset('()<>@,;:\\"/[]?=')


class AdmissionRejection(Exception):
    """A request failed one of the admission checks."""

    def __init__(self, status_code: int, reason: str, headers: Optional[dict[str, str]] = None) -> None:
        super().__init__(reason)
        self.status_code = status_code
        self.reason = reason
        self.headers = headers or {}


@dataclass(frozen=True, slots=True)
class AdmittedRequest:
    """A request that passed every admission check."""

    body: bytes
    document: Any = field(repr=False)


def _is_token_char(c: str) -> bool:
    return 0x20 < ord(c) < 0x7F and c not in _TSPECIALS


def _consume_token(v: str) -> tuple[str, str]:
    i = 0
    while i < len(v) and _is_token_char(v[i]):
        i += 1
    return v[:i], v[i:]


def _consume_value(v: str) -> tuple[Optional[str], str]:
    """Consume a token or a quoted-string; ``None`` means nothing valid was found."""
    if not v.startswith('"'):
        token, rest = _consume_token(v)
        return (token or None), rest

    buf: list[str] = []
    i = 1
    while i < len(v):
        c = v[i]
        if c == '"':
            return "".join(buf), v[i + 1 :]
        if c == "\\" and i + 1 < len(v):
            buf.append(v[i + 1])
            i += 2
            continue
        if c in "\r\n":
            return None, v
        buf.append(c)
        i += 1
    return None, v


def parse_media_type(value: str) -> tuple[str, dict[str, str]]:
    """Parse a ``Content-Type`` style header value.

    Parameters
    ----------
    value : str
        The raw header value, e.g. ``application/json; charset=utf-8``

    Returns
    -------
    tuple[str, dict[str, str]]
        The lower-cased media type and its parameters (lower-cased names)

    Raises
    ------
    ValueError
        If the value has no media type or a malformed parameter list
    """
    base, _, remaining = value.partition(";")
    media_type = base.strip().lower()

    main, rest = _consume_token(media_type)
    if not main:
        raise ValueError("no media type")
    if rest:
        if not rest.startswith("/"):
            raise ValueError("expected slash after first token")
        sub, rest = _consume_token(rest[1:])
        if not sub or rest:
            raise ValueError("expected token after slash")

    params: dict[str, str] = {}
    while remaining.strip(" \t"):
        remaining = remaining.lstrip(" \t")
        if remaining.startswith(";"):
            remaining = remaining[1:]
            continue

        key, remaining = _consume_token(remaining)
        remaining = remaining.lstrip(" \t")
        if not key or not remaining.startswith("="):
            raise ValueError("invalid media parameter")

        param_value, remaining = _consume_value(remaining[1:].lstrip(" \t"))
        if param_value is None:
            raise ValueError("invalid media parameter")

        key = key.lower()
        if key in params:
            raise ValueError(f"duplicate parameter name: {key}")
        params[key] = param_value

        remaining = remaining.lstrip(" \t")
        if remaining and not remaining.startswith(";"):
            raise ValueError("invalid media parameter")

    return media_type, params


async def read_limited_body(request: Request, limit: int = MAX_BODY_SIZE) -> bytes:
    """Read at most ``limit`` bytes of the request body; the rest is left unread."""
    body = bytearray()
    async for chunk in request.stream():
        remaining = limit - len(body)
        if len(chunk) >= remaining:
            body.extend(chunk[:remaining])
            break
        body.extend(chunk)
    return bytes(body)


async def admit(
    request: Request,
    logger: logging.Logger | logging.LoggerAdapter,
    *,
    signing_secret: Optional[str],
    verification_token: Optional[str] = None,
    max_body_size: int = MAX_BODY_SIZE,
    read_timeout: float = READ_TIMEOUT,
    now: Optional[float] = None,
) -> AdmittedRequest:
    """Run the admission checks against ``request``.

    Parameters
    ----------
    request : Request
        The inbound request
    logger : logging.Logger | logging.LoggerAdapter
        Request-scoped logger used to record rejections
    signing_secret : Optional[str]
        Slack signing secret; without one every request fails authenticity
    verification_token : Optional[str]
        Legacy verification token checked against the body ``token`` field
    max_body_size : int
        Body bytes read before truncation
    read_timeout : float
        Seconds allowed for reading the body
    now : Optional[float]
        Current UNIX time for the replay window (tests)

    Returns
    -------
    AdmittedRequest
        The raw body and the parsed JSON document

    Raises
    ------
    AdmissionRejection
        On the first failed check
    """
    if request.method != "POST":
        logger.info("unexpected HTTP method http_method=%s", request.method)
        raise AdmissionRejection(
            status.HTTP_405_METHOD_NOT_ALLOWED, "unexpected HTTP method", headers={"Allow": "POST"}
        )

    try:
        media_type, _ = parse_media_type(request.headers.get("content-type", ""))
    except ValueError as e:
        logger.error("failed to parse Content-Type: %s", e)
        raise AdmissionRejection(
            status.HTTP_400_BAD_REQUEST, "failed to parse Content-Type", headers={"Accept": ACCEPTED_CONTENT_TYPE}
        ) from e

    if media_type != _JSON_MEDIA_TYPE:
        logger.error("content type was not JSON content_type=%s", media_type)
        raise AdmissionRejection(
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "content type was not JSON", headers={"Accept": ACCEPTED_CONTENT_TYPE}
        )

    try:
        body = await asyncio.wait_for(read_limited_body(request, max_body_size), timeout=read_timeout)
    except (ClientDisconnect, TimeoutError, OSError) as e:
        logger.error("failed to read request body: %s", type(e).__name__)
        raise AdmissionRejection(status.HTTP_500_INTERNAL_SERVER_ERROR, "failed to read request body") from e

    try:
        document = json.loads(body)
    except (ValueError, RecursionError) as e:
        logger.error("failed to unmarshal JSON document: %s", e if isinstance(e, json.JSONDecodeError) else type(e).__name__)
        raise AdmissionRejection(UNPROCESSABLE_ENTITY, "failed to unmarshal JSON document") from e

    signature = request.headers.get(SIGNATURE_HEADER)
    timestamp = request.headers.get(TIMESTAMP_HEADER)
    if not signature or not timestamp:
        logger.warning("missing Slack signature headers")
        raise AdmissionRejection(status.HTTP_401_UNAUTHORIZED, "missing Slack signature headers")

    if not verify_signature(timestamp, body, signing_secret, signature, now=now):
        logger.warning("invalid Slack request signature")
        raise AdmissionRejection(status.HTTP_401_UNAUTHORIZED, "invalid Slack request signature")

    if isinstance(document, dict) and not verify_token(document, verification_token):
        logger.warning("invalid Slack verification token")
        raise AdmissionRejection(status.HTTP_401_UNAUTHORIZED, "invalid Slack verification token")

    return AdmittedRequest(body=body, document=document)
