"""Lines, recipes, dashboard and health endpoint tests."""

import pytest
from httpx import AsyncClient

SPRING_MIX = {
    "name": "Spring Mix",
    "flowers": [
        {"type": "Roses", "color": "Red", "quantity": 3},
        {"type": "Tulips", "color": "Yellow", "quantity": "5"},
        {"type": "", "color": "", "quantity": ""},
    ],
}


@pytest.mark.api
@pytest.mark.asyncio
class TestLineEndpoints:

    async def test_list_lines_by_id(self, client: AsyncClient, auth_headers: dict, lines):
        response = await client.get("/api/lines/", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [line["id"] for line in data] == list(range(1, 11))
        assert data[0]["name"] == "Line 1"
        assert all(line["status"] == "idle" and line["produced_count"] == 0 for line in data)

    async def test_unknown_line(self, client: AsyncClient, auth_headers: dict, lines):
        response = await client.get("/api/lines/11", headers=auth_headers)
        assert response.status_code == 404

    async def test_set_recipe_then_complete(self, client: AsyncClient, auth_headers: dict, lines):
        recipe = (await client.post("/api/recipes/", json=SPRING_MIX, headers=auth_headers)).json()["recipe"]

        response = await client.patch(
            "/api/lines/4", json={"active_recipe_id": recipe["id"]}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["active_recipe_id"] == recipe["id"]

        bunch = await client.post("/api/lines/4/bunches", json={"bunch_id": "BUN9"}, headers=auth_headers)
        assert bunch.json()["bunch"]["recipe_name"] == "Spring Mix"

    async def test_set_status(self, client: AsyncClient, auth_headers: dict, lines):
        response = await client.patch("/api/lines/5", json={"status": "maintenance"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "maintenance"

    async def test_empty_patch_rejected(self, client: AsyncClient, auth_headers: dict, lines):
        response = await client.patch("/api/lines/5", json={}, headers=auth_headers)
        assert response.status_code == 422

    async def test_bad_status_rejected(self, client: AsyncClient, auth_headers: dict, lines):
        response = await client.patch("/api/lines/5", json={"status": "running"}, headers=auth_headers)
        assert response.status_code == 422


@pytest.mark.api
@pytest.mark.asyncio
class TestRecipeEndpoints:

    async def test_create_recipe(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/recipes/", json=SPRING_MIX, headers=auth_headers)

        assert response.status_code == 201
        recipe = response.json()["recipe"]
        assert recipe["name"] == "Spring Mix"
        assert recipe["flowers"] == [
            {"type": "Roses", "color": "Red", "quantity": 3},
            {"type": "Tulips", "color": "Yellow", "quantity": 5},
        ]
        assert recipe["created_by"] == "floor@example.com"

    async def test_blank_name(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/recipes/", json={**SPRING_MIX, "name": " "}, headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["error"]["message"] == "Please enter a recipe name"

    async def test_no_flowers(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/recipes/", json={"name": "Empty", "flowers": []}, headers=auth_headers
        )
        assert response.status_code == 422
        assert response.json()["error"]["message"] == "Please add at least one flower"

        listing = await client.get("/api/recipes/", headers=auth_headers)
        assert listing.json() == []

    async def test_list_newest_first(self, client: AsyncClient, auth_headers: dict):
        first = (await client.post("/api/recipes/", json=SPRING_MIX, headers=auth_headers)).json()
        second = (await client.post(
            "/api/recipes/", json={**SPRING_MIX, "name": "Romance Bundle"}, headers=auth_headers
        )).json()

        response = await client.get("/api/recipes/", headers=auth_headers)
        assert [r["id"] for r in response.json()] == [second["recipe"]["id"], first["recipe"]["id"]]


@pytest.mark.api
@pytest.mark.asyncio
class TestDashboardAndHealth:

    async def test_dashboard_counts(self, client: AsyncClient, auth_headers: dict, lines):
        scans = []
        for barcode in ("ROSES|RED|200|STEMS", "TULIPS|YELLOW|150|STEMS", "LILIES|WHITE|100|STEMS"):
            r = await client.post("/api/inventory/scan", json={"barcode": barcode}, headers=auth_headers)
            scans.append(r.json()["box"]["id"])
        await client.post(f"/api/inventory/{scans[0]}/checkout", headers=auth_headers)
        await client.post("/api/lines/1/boxes", json={"box_id": scans[1]}, headers=auth_headers)
        await client.post("/api/lines/1/bunches", json={"bunch_id": "BUN1"}, headers=auth_headers)

        response = await client.get("/api/dashboard/", headers=auth_headers)

        assert response.json() == {
            "active_lines": 1,
            "boxes_in_stock": 1,
            "boxes_checked_out": 1,
            "boxes_on_lines": 1,
            "bunches_produced": 1,
            "recipes": 0,
        }

    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["service"] == "StemTrack"
        assert response.headers["Permissions-Policy"].find("camera=(self)") >= 0
