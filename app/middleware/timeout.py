"""Request timeout middleware.

Cancels the request if it runs longer than the configured timeout (asyncio.wait_for).
Uses raw ASGI (no BaseHTTPMiddleware) for production-safe streaming and background tasks.
"""

import asyncio
import logging
from typing import Callable

from app.middleware._asgi import send_json_error

logger = logging.getLogger(__name__)


def TimeoutMiddleware(app: Callable, timeout_seconds: float) -> Callable:
    """Cancel request after timeout_seconds (sends 504 unless a response already started). Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        started = False

        async def send_tracking(message: dict) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await asyncio.wait_for(app(scope, receive, send_tracking), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Request timed out after %s seconds: %s %s",
                timeout_seconds,
                scope.get("method", ""),
                scope.get("path", ""),
            )
            if started:
                return
            await send_json_error(
                send,
                504,
                "GATEWAY_TIMEOUT",
                f"Request timed out after {timeout_seconds} seconds",
                {"timeout_seconds": timeout_seconds},
            )

    return asgi_app
