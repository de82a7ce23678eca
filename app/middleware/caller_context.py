"""Caller context middleware.

Reads the tenant and user ID headers into context variables (see
app.core.tenant_context) for the duration of the request. Identity is
resolved upstream by the auth provider; malformed values are ignored
rather than rejected so a bad header resolves as an anonymous caller.
Raw ASGI.
"""

import logging
from typing import Callable

from app.core.tenant_context import current_tenant_id, current_user_id
from app.core.tenant_validation import is_valid_tenant_id_format, is_valid_user_id_format
from app.middleware._asgi import get_header

logger = logging.getLogger(__name__)


def _validated(value: str | None, is_valid: Callable[[str], bool], label: str) -> str | None:
    if not value:
        return None
    value = value.strip()
    if not is_valid(value):
        logger.debug("Ignoring malformed %s header (length=%d)", label, len(value))
        return None
    return value


def CallerContextMiddleware(
    app: Callable,
    tenant_header_name: str = "X-Tenant-ID",
    user_header_name: str = "X-User-ID",
) -> Callable:
    """Set current tenant/user IDs from headers before the route runs; reset afterwards."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        tenant_id = _validated(
            get_header(scope, tenant_header_name), is_valid_tenant_id_format, "tenant"
        )
        user_id = _validated(get_header(scope, user_header_name), is_valid_user_id_format, "user")
        tenant_token = current_tenant_id.set(tenant_id)
        user_token = current_user_id.set(user_id)
        try:
            await app(scope, receive, send)
        finally:
            current_user_id.reset(user_token)
            current_tenant_id.reset(tenant_token)

    return asgi_app
