"""Correlation ID middleware.

Propagates X-Correlation-ID across services: forwarded from the client,
else the request ID, else a new UUID. Raw ASGI.
"""

import uuid
from typing import Callable

from app.middleware._asgi import get_header, send_with_header
from app.middleware.request_id import sanitize_request_id


def CorrelationIDMiddleware(
    app: Callable, header_name: str = "X-Correlation-ID"
) -> Callable:
    """Add or forward the correlation ID on scope state and response. Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        state = scope.setdefault("state", {})
        raw = get_header(scope, header_name)
        correlation_id = (
            sanitize_request_id(raw) if raw else state.get("request_id") or str(uuid.uuid4())
        )
        state["correlation_id"] = correlation_id
        await app(scope, receive, send_with_header(send, header_name, correlation_id))

    return asgi_app
