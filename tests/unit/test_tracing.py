"""Tracing helpers must never change results or errors (no provider configured)."""

import pytest

from app.shared.telemetry.tracing import (
    TracedOperation,
    _safe_attributes,
    add_span_attributes,
    get_trace_id,
    traced,
)


def test_safe_attributes_keeps_only_allowlisted_kwargs():
    attrs = _safe_attributes(
        {"tenant_id": "t-1", "data_class": "milk_stats", "payload": {"rows": 3}, "tag": None}
    )
    assert attrs == {"arg.tenant_id": "t-1", "arg.data_class": "milk_stats"}


async def test_traced_async_returns_result():
    @traced("test.async")
    async def compute(tenant_id: str) -> str:
        return f"rows:{tenant_id}"

    assert await compute(tenant_id="t-1") == "rows:t-1"


async def test_traced_async_propagates_error():
    @traced()
    async def broken() -> None:
        raise RuntimeError("db down")

    with pytest.raises(RuntimeError, match="db down"):
        await broken()


def test_traced_sync_returns_result_and_keeps_name():
    @traced("test.sync")
    def double(x: int) -> int:
        return x * 2

    assert double(21) == 42
    assert double.__name__ == "double"


def test_traced_operation_propagates_error():
    with pytest.raises(ValueError):
        with TracedOperation("test.block", {"operation": "x"}):
            raise ValueError("bad")


async def test_traced_operation_async_form():
    async with TracedOperation("test.async_block") as op:
        add_span_attributes(key="feature_x")
    assert op.operation_name == "test.async_block"


def test_trace_id_is_none_outside_a_recording_span():
    assert get_trace_id() is None
