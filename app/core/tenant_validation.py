"""Identifier format validation for caller headers and cache keys.

Shared by middleware, dependencies and cache key builders so tenant and user
IDs are rejected consistently. The allowed alphabet excludes the cache key
separator and every glob metacharacter, which keeps pattern-based
invalidation confined to the intended tenant.
"""

import re

# CUID/UUID-style: alphanumeric, hyphen, underscore.
TENANT_ID_MAX_LENGTH = 64
_IDENTIFIER_RE = re.compile(
    r"^[a-zA-Z0-9_-]{1," + str(TENANT_ID_MAX_LENGTH) + r"}$"
)


def is_valid_tenant_id_format(value: str) -> bool:
    """Return True if value is safe for use as a tenant ID (header and key material)."""
    if not value or len(value) > TENANT_ID_MAX_LENGTH:
        return False
    return bool(_IDENTIFIER_RE.fullmatch(value))


def is_valid_user_id_format(value: str) -> bool:
    """Return True if value is safe for use as a user ID (same alphabet as tenant IDs)."""
    return is_valid_tenant_id_format(value)
