"""Cache key builders. Single place for key format (DRY).

Query keys always embed the tenant ID, so two tenants can never share an
entry. Key components (tenant_id, data_class) must not contain
CACHE_KEY_SEP to avoid ambiguous or colliding keys, and tenant IDs are
restricted to a glob-safe alphabet so tenant-wide pattern deletion cannot
reach another tenant.

Layout (prefix from settings.cache_key_prefix):
    {prefix}:q:{tenant_id}:{data_class}:{sha256(canonical params)}
    {prefix}:tag:{tag}
Tags follow the vocabulary {tenant_id}:{data_class}.
"""

from __future__ import annotations

import hashlib
import json
import math
import re
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from app.core.constants import CACHE_KEY_SEP, CACHE_SEGMENT_QUERY, CACHE_SEGMENT_TAG
from app.core.tenant_validation import is_valid_tenant_id_format

_DATA_CLASS_RE = re.compile(r"^[a-zA-Z0-9_.-]{1,64}$")


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must be a non-empty string")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def _validate_tenant_id(tenant_id: str) -> None:
    """Raise ValueError unless tenant_id is present and glob-safe."""
    _validate_key_component(tenant_id, "tenant_id")
    if not is_valid_tenant_id_format(tenant_id):
        raise ValueError(
            "Cache key component 'tenant_id' must be alphanumeric, hyphen or underscore "
            "(max 64 characters)"
        )


def data_class_name(data_class: str | Enum) -> str:
    """Return the validated string form of a data class (enum value or plain string).

    Raises:
        ValueError: If the name is empty, contains the separator or other
            characters outside [a-zA-Z0-9_.-].
    """
    name = data_class.value if isinstance(data_class, Enum) else data_class
    _validate_key_component(name, "data_class")
    if not _DATA_CLASS_RE.fullmatch(name):
        raise ValueError(
            "Cache key component 'data_class' must match [a-zA-Z0-9_.-] (max 64 characters)"
        )
    return name


def _dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), allow_nan=False)


def _json_key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (bool, int, float)):
        return _dump(key)
    raise ValueError(f"Unsupported query parameter key type: {type(key).__name__}")


def _normalize(value: Any) -> Any:
    """Reduce params to plain JSON types with a process-independent ordering.

    Raises:
        ValueError: For values without a stable JSON form (arbitrary objects,
            NaN or infinity, dict keys that collide once stringified).
    """
    if isinstance(value, Enum):
        return _normalize(value.value)
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError("Query parameters must not contain NaN or infinity")
        return value
    if isinstance(value, Mapping):
        normalized: dict[str, Any] = {}
        for key, item in value.items():
            name = _json_key(key)
            if name in normalized:
                raise ValueError(f"Query parameter key {name!r} is ambiguous")
            normalized[name] = _normalize(item)
        return normalized
    if isinstance(value, (list, tuple)):
        return [_normalize(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize(item) for item in value), key=_dump)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    raise ValueError(f"Unsupported query parameter type: {type(value).__name__}")


def canonical_params(params: Any) -> str:
    """Canonical JSON for query parameters (sorted keys, no whitespace).

    Sets are sorted; dates, times, UUIDs and decimals are rendered as
    strings. Any other non-JSON value raises ValueError.
    """
    return _dump(_normalize(params))


def params_digest(params: Any) -> str:
    """SHA-256 hex digest of the canonical parameter JSON."""
    return hashlib.sha256(canonical_params(params).encode()).hexdigest()


def query_key(prefix: str, tenant_id: str, data_class: str | Enum, params: Any = None) -> str:
    """Cache key for one query result (tenant + data class + params digest).

    None params share the key of {}; every other value keeps its own.
    """
    _validate_tenant_id(tenant_id)
    name = data_class_name(data_class)
    digest = params_digest(params if params is not None else {})
    return CACHE_KEY_SEP.join((prefix, CACHE_SEGMENT_QUERY, tenant_id, name, digest))


def tenant_query_pattern(prefix: str, tenant_id: str) -> str:
    """Glob pattern matching every query key of a tenant."""
    _validate_tenant_id(tenant_id)
    return CACHE_KEY_SEP.join((prefix, CACHE_SEGMENT_QUERY, tenant_id, "*"))


def tenant_tag(tenant_id: str, data_class: str | Enum) -> str:
    """Tag for one data class of one tenant ({tenant_id}:{data_class})."""
    _validate_tenant_id(tenant_id)
    return f"{tenant_id}{CACHE_KEY_SEP}{data_class_name(data_class)}"


def tag_key(prefix: str, tag: str) -> str:
    """Key of the set that indexes every cache key stored with tag."""
    if not tag:
        raise ValueError("Cache tag must be a non-empty string")
    return f"{prefix}{CACHE_KEY_SEP}{CACHE_SEGMENT_TAG}{CACHE_KEY_SEP}{tag}"


def tenant_tag_pattern(prefix: str, tenant_id: str) -> str:
    """Glob pattern matching the tag index keys of every tag namespaced to tenant_id."""
    _validate_tenant_id(tenant_id)
    return CACHE_KEY_SEP.join((prefix, CACHE_SEGMENT_TAG, tenant_id, "*"))
