"""Cache administration API schemas."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CacheInvalidateRequest(BaseModel):
    """Request body for POST /admin/cache/invalidate. At least one tag or key."""

    model_config = ConfigDict(extra="forbid")

    tags: list[str] = Field(default_factory=list, max_length=500)
    keys: list[str] = Field(default_factory=list, max_length=500)

    @model_validator(mode="after")
    def require_target(self) -> "CacheInvalidateRequest":
        if not self.tags and not self.keys:
            raise ValueError("Provide at least one tag or key to invalidate")
        if any(not t for t in self.tags) or any(not k for k in self.keys):
            raise ValueError("Tags and keys must be non-empty strings")
        return self


class CacheInvalidateResponse(BaseModel):
    """Number of cache entries removed."""

    invalidated: int
