"""Feature flag admin API and caller-facing feature checks."""

import pytest
from httpx import AsyncClient

BASE = "/api/v1/admin/feature-flags"
KEY = "dark_mode_support"


async def test_admin_requires_token(client: AsyncClient) -> None:
    response = await client.get(BASE)
    assert response.status_code == 401

    response = await client.get(BASE, headers={"X-Admin-Token": "wrong"})
    assert response.status_code == 401


@pytest.mark.usefixtures("without_admin_token")
async def test_admin_disabled_without_configured_token(client: AsyncClient) -> None:
    response = await client.get(BASE, headers={"X-Admin-Token": "anything"})
    assert response.status_code == 503


async def test_list_flags(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.get(BASE, headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    keys = [f["key"] for f in data["flags"]]
    assert KEY in keys
    assert data["stats"]["total"] == len(keys)
    assert all(f["source"] == "default" for f in data["flags"])


async def test_list_flags_filters(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.get(BASE, params={"phase": "phase_3"}, headers=admin_headers)
    assert response.status_code == 200
    flags = response.json()["flags"]
    assert flags and all(f["phase"] == "phase_3" for f in flags)

    response = await client.get(BASE, params={"enabled": "true"}, headers=admin_headers)
    assert all(f["active"] for f in response.json()["flags"])


async def test_get_unknown_flag_is_400(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.get(f"{BASE}/no_such_capability", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "UNKNOWN_CAPABILITY_KEY"


async def test_update_then_resolve(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.put(
        f"{BASE}/{KEY}", json={"target_tenant_ids": ["farm-42"]}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["target_tenant_ids"] == ["farm-42"]

    response = await client.get(f"/api/v1/features/{KEY}", headers={"X-Tenant-ID": "farm-42"})
    assert response.json() == {"key": KEY, "enabled": True}

    response = await client.get(f"/api/v1/features/{KEY}", headers={"X-Tenant-ID": "farm-99"})
    assert response.json() == {"key": KEY, "enabled": False}

    response = await client.get(
        f"{BASE}/{KEY}", headers={**admin_headers, "X-Tenant-ID": "farm-42"}
    )
    assert response.json()["source"] == "store"
    assert response.json()["active"] is True


async def test_update_rejects_unknown_fields(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.put(f"{BASE}/{KEY}", json={"colour": "red"}, headers=admin_headers)
    assert response.status_code == 422


async def test_update_rejects_out_of_range(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.put(
        f"{BASE}/{KEY}", json={"rollout_percentage": 101}, headers=admin_headers
    )
    assert response.status_code == 422


async def test_bulk_update(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.post(
        f"{BASE}/bulk",
        json={
            "updates": [
                {"key": KEY, "rollout_percentage": 100, "enabled_default": True},
                {"key": "no_such_capability", "rollout_percentage": 5},
            ]
        },
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert (data["total"], data["succeeded"], data["failed"]) == (2, 1, 1)
    assert data["results"][0]["flag"]["rollout_percentage"] == 100
    assert data["results"][1]["success"] is False

    response = await client.get("/api/v1/features", headers={"X-User-ID": "u-1"})
    assert KEY in response.json()["features"]


async def test_bulk_requires_updates(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    response = await client.post(f"{BASE}/bulk", json={"updates": []}, headers=admin_headers)
    assert response.status_code == 422


async def test_reset(client: AsyncClient, admin_headers: dict[str, str]) -> None:
    await client.put(f"{BASE}/{KEY}", json={"rollout_percentage": 77}, headers=admin_headers)
    response = await client.delete(f"{BASE}/{KEY}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["rollout_percentage"] == 0


async def test_enabled_features_for_anonymous_caller(client: AsyncClient) -> None:
    response = await client.get("/api/v1/features")
    assert response.status_code == 200
    data = response.json()
    assert data["tenant_id"] is None and data["user_id"] is None
    assert isinstance(data["features"], list)


async def test_feature_status_unknown_key(client: AsyncClient) -> None:
    response = await client.get("/api/v1/features/no_such_capability")
    assert response.status_code == 400
