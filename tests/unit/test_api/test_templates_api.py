"""Tests for the template API endpoints."""

import pytest
from httpx import AsyncClient

BASE = "/api/v1/templates"

TEMPLATE = {
    "name": "Newsletter",
    "selected_fields": ["_billing_email", "order_total", "_shipping_city"],
    "field_aliases": {"_billing_email": "E-mail"},
    "field_order": ["order_total", "_billing_email", "_shipping_city"],
}


class TestTemplatesApi:
    """CRUD through the HTTP surface."""

    @pytest.mark.asyncio
    async def test_create_resolves_columns_and_headers(self, client: AsyncClient, headers: dict) -> None:
        response = await client.post(BASE, json=TEMPLATE, headers=headers["manager"])
        assert response.status_code == 201
        body = response.json()
        assert body["columns"] == ["order_total", "_billing_email", "_shipping_city"]
        assert body["headers"] == ["Order Total", "E-mail", "City"]
        assert body["created_by"] == "2"

    @pytest.mark.asyncio
    async def test_alias_for_unselected_field_is_422(self, client: AsyncClient, headers: dict) -> None:
        payload = {**TEMPLATE, "field_aliases": {"order_id": "ID"}}
        response = await client.post(BASE, json=payload, headers=headers["admin"])
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_plain_user_forbidden(self, client: AsyncClient, headers: dict) -> None:
        response = await client.get(BASE, headers=headers["customer"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_duplicate_and_delete(self, client: AsyncClient, headers: dict) -> None:
        created = (await client.post(BASE, json=TEMPLATE, headers=headers["admin"])).json()
        url = f"{BASE}/{created['id']}"

        updated = await client.patch(url, json={"name": "Renamed"}, headers=headers["admin"])
        assert updated.status_code == 200
        assert updated.json()["name"] == "Renamed"

        copy = await client.post(f"{url}/duplicate", headers=headers["manager"])
        assert copy.status_code == 201
        assert copy.json()["name"] == "Renamed (copy)"
        assert copy.json()["id"] != created["id"]

        listing = (await client.get(BASE, headers=headers["admin"])).json()
        assert listing["pagination"]["total"] == 2

        assert (await client.delete(url, headers=headers["admin"])).status_code == 204
        assert (await client.get(url, headers=headers["admin"])).status_code == 404
