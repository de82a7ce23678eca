"""Flag configuration stores (IFlagConfigStore): SQL-backed and in-memory."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.entities.capability_flag import CapabilityFlag
from app.domain.exceptions import ConfigurationUnavailableException
from app.infrastructure.persistence.models.feature_flag import FeatureFlag

logger = logging.getLogger(__name__)

_METADATA_FIELDS = ("phase", "dependencies", "risk_level")


def _row_to_flag(row: FeatureFlag) -> CapabilityFlag:
    """Map ORM FeatureFlag to the domain CapabilityFlag."""
    fields: dict[str, Any] = {
        "enabled_default": row.enabled_default,
        "rollout_percentage": row.rollout_percentage,
        "description": row.description,
        "target_user_ids": row.target_user_ids,
        "target_tenant_ids": row.target_tenant_ids,
    }
    metadata = row.flag_metadata or {}
    fields.update({name: metadata.get(name) for name in _METADATA_FIELDS})
    return CapabilityFlag.from_fields(row.key, fields)


def _flag_to_values(flag: CapabilityFlag) -> dict[str, Any]:
    """Column values for an insert/update of flag."""
    fields = flag.to_fields()
    return {
        "key": flag.key,
        "enabled_default": fields["enabled_default"],
        "rollout_percentage": fields["rollout_percentage"],
        "description": fields["description"],
        "target_user_ids": fields["target_user_ids"],
        "target_tenant_ids": fields["target_tenant_ids"],
        "metadata": {name: fields[name] for name in _METADATA_FIELDS},
    }


class SqlFlagConfigStore:
    """Flag store over the feature_flag table (PostgreSQL).

    Each call runs in its own session. SQLAlchemy errors are raised as
    ConfigurationUnavailableException.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_flag(self, key: str) -> CapabilityFlag | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(FeatureFlag, key)
                return _row_to_flag(row) if row is not None else None
        except SQLAlchemyError as e:
            raise ConfigurationUnavailableException("flag_store", str(e)) from e

    async def upsert_flag(self, key: str, fields: Mapping[str, Any]) -> CapabilityFlag:
        """Insert or overwrite the row for key (single INSERT .. ON CONFLICT statement).

        Raises:
            ValidationException: If fields do not form a valid flag.
            ConfigurationUnavailableException: On database errors.
        """
        flag = CapabilityFlag.from_fields(key, fields)
        values = _flag_to_values(flag)
        stmt = insert(FeatureFlag.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={
                **{name: stmt.excluded[name] for name in values if name != "key"},
                "updated_at": func.now(),
            },
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(stmt)
        except SQLAlchemyError as e:
            raise ConfigurationUnavailableException("flag_store", str(e)) from e
        logger.debug("Stored feature flag %s", key)
        return flag

    async def list_flags(self) -> list[CapabilityFlag]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(FeatureFlag).order_by(FeatureFlag.key))
                return [_row_to_flag(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise ConfigurationUnavailableException("flag_store", str(e)) from e


class InMemoryFlagConfigStore:
    """Process-local flag store (development and tests)."""

    def __init__(self, flags: Mapping[str, CapabilityFlag] | None = None) -> None:
        self._flags: dict[str, CapabilityFlag] = dict(flags or {})

    async def get_flag(self, key: str) -> CapabilityFlag | None:
        return self._flags.get(key)

    async def upsert_flag(self, key: str, fields: Mapping[str, Any]) -> CapabilityFlag:
        flag = CapabilityFlag.from_fields(key, fields)
        self._flags[key] = flag
        return flag

    async def list_flags(self) -> list[CapabilityFlag]:
        return [self._flags[key] for key in sorted(self._flags)]
