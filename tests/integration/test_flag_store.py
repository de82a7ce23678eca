"""SqlFlagConfigStore integration tests. Require Postgres with migrations applied."""

import uuid

import pytest

from app.core.config import get_settings
from app.domain.enums import RolloutPhase
from app.infrastructure.persistence import database
from app.infrastructure.persistence.repositories import SqlFlagConfigStore


@pytest.fixture
async def sql_store():
    if get_settings().flag_store_backend != "postgres":
        pytest.skip(
            "Postgres not configured: set FLAG_STORE_BACKEND=postgres and DATABASE_URL, "
            "then run: alembic upgrade head"
        )
    yield SqlFlagConfigStore(database.get_session_factory())
    await database.dispose_engine()


@pytest.mark.requires_db
async def test_upsert_and_get(sql_store: SqlFlagConfigStore) -> None:
    key = f"test_flag_{uuid.uuid4().hex[:8]}"
    created = await sql_store.upsert_flag(
        key, {"rollout_percentage": 25, "target_tenant_ids": ["t1"], "phase": "phase_2"}
    )
    assert created.rollout_percentage == 25

    found = await sql_store.get_flag(key)
    assert found is not None
    assert found.target_tenant_ids == frozenset({"t1"})
    assert found.phase == RolloutPhase.PHASE_2


@pytest.mark.requires_db
async def test_upsert_overwrites(sql_store: SqlFlagConfigStore) -> None:
    key = f"test_flag_{uuid.uuid4().hex[:8]}"
    await sql_store.upsert_flag(key, {"rollout_percentage": 10})
    await sql_store.upsert_flag(key, {"rollout_percentage": 90, "enabled_default": True})
    found = await sql_store.get_flag(key)
    assert found is not None
    assert (found.rollout_percentage, found.enabled_default) == (90, True)
    assert key in [f.key for f in await sql_store.list_flags()]


@pytest.mark.requires_db
async def test_missing_flag(sql_store: SqlFlagConfigStore) -> None:
    assert await sql_store.get_flag("does_not_exist_" + uuid.uuid4().hex) is None
