"""Request correlation middleware.

Each request gets a correlation id: the inbound ``X-Request-Id`` header when it
looks sane, otherwise a fresh uuid4. The id is stored on ``request.state`` for
handlers to bind into their loggers and echoed back on the response.
"""

from __future__ import annotations

import re
import uuid
from typing import Awaitable, Callable, Final, Optional

from fastapi import Request, Response

__all__: list[str] = ["REQUEST_ID_HEADER", "add_request_id", "request_id_of"]

REQUEST_ID_HEADER: Final[str] = "X-Request-Id"

_VALID_REQUEST_ID: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _request_id(header_value: Optional[str]) -> str:
    if header_value and _VALID_REQUEST_ID.match(header_value):
        return header_value
    return str(uuid.uuid4())


def request_id_of(request: Request) -> Optional[str]:
    """The correlation id assigned by :func:`add_request_id`, if any."""
    return getattr(request.state, "request_id", None)


async def add_request_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    rid = _request_id(request.headers.get(REQUEST_ID_HEADER))
    request.state.request_id = rid
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = rid
    return response
