"""Cache administration API: invalidate by tag/key and per tenant."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from app.api.v1.dependencies import get_query_cache, require_admin_token
from app.core.limiter import limit_invalidations
from app.core.tenant_validation import is_valid_tenant_id_format
from app.infrastructure.cache.query_cache import QueryCache
from app.schemas.cache import CacheInvalidateRequest, CacheInvalidateResponse

router = APIRouter(dependencies=[Depends(require_admin_token)])


@router.post("/invalidate", response_model=CacheInvalidateResponse)
@limit_invalidations
async def invalidate_cache(
    request: Request,
    body: CacheInvalidateRequest,
    cache: Annotated[QueryCache, Depends(get_query_cache)],
):
    """Invalidate every entry stored under the given tags, then the given keys."""
    invalidated = await cache.invalidate_tags(body.tags)
    for key in body.keys:
        invalidated += int(await cache.invalidate_key(key))
    return CacheInvalidateResponse(invalidated=invalidated)


@router.delete("/tenants/{tenant_id}", response_model=CacheInvalidateResponse)
@limit_invalidations
async def invalidate_tenant_cache(
    request: Request,
    tenant_id: str,
    cache: Annotated[QueryCache, Depends(get_query_cache)],
):
    """Invalidate every cached entry of one tenant."""
    if not is_valid_tenant_id_format(tenant_id):
        raise HTTPException(
            status_code=400,
            detail="Invalid tenant ID format (use alphanumeric, hyphen, underscore; max 64 characters)",
        )
    return CacheInvalidateResponse(invalidated=await cache.invalidate_tenant(tenant_id))
