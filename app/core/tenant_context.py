"""Caller context for the current request.

Middleware sets the current tenant_id and user_id in these context variables
so rollout checks and tenant-scoped cache calls can build a CallerIdentity
without threading headers through every function.
"""

from contextvars import ContextVar

# Current tenant ID for the request (set by middleware).
current_tenant_id: ContextVar[str | None] = ContextVar(
    "current_tenant_id", default=None
)
# Current user ID for the request (set by middleware; resolved upstream by the auth provider).
current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)


def set_tenant_id(tenant_id: str | None) -> None:
    """Set the current tenant ID for this context (e.g. request)."""
    current_tenant_id.set(tenant_id)


def get_tenant_id() -> str | None:
    """Return the current tenant ID if set."""
    return current_tenant_id.get()


def set_user_id(user_id: str | None) -> None:
    """Set the current user ID for this context (e.g. request)."""
    current_user_id.set(user_id)


def get_user_id() -> str | None:
    """Return the current user ID if set."""
    return current_user_id.get()
