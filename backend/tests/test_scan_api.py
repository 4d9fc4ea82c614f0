"""Scan endpoint tests: intake, checkout, line assignment, bunch completion."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from stemtrack.models.activity_log import ActivityLog
from stemtrack.models.box import Box
from stemtrack.models.line_assignment import LineAssignment
from stemtrack.schemas.changes import ChangeKind


async def _intake(client: AsyncClient, headers: dict, barcode: str = "ROSES|RED|200|STEMS") -> dict:
    response = await client.post("/api/inventory/scan", json={"barcode": barcode}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["box"]


@pytest.mark.api
@pytest.mark.asyncio
class TestInventoryEndpoints:

    async def test_intake_scan(self, client: AsyncClient, auth_headers: dict, published: list):
        response = await client.post(
            "/api/inventory/scan", json={"barcode": "ROSES|RED|200|STEMS"}, headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Added Roses - Red to inventory!"
        assert data["box"]["location"] == "inventory"
        assert data["box"]["updated_by"] == "floor@example.com"

        # Published only after commit
        assert [(e.table, e.event_type) for e in published] == [("inventory", ChangeKind.INSERT)]
        assert published[0].new["id"] == data["box"]["id"]

    async def test_malformed_intake(self, client: AsyncClient, auth_headers: dict, published: list, db_session):
        response = await client.post(
            "/api/inventory/scan", json={"barcode": "ROSES|RED|STEMS"}, headers=auth_headers
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "MALFORMED_INPUT"
        assert error["message"] == "Invalid barcode format. Expected: TYPE|COLOR|QUANTITY|UNIT"
        assert published == []
        assert (await db_session.execute(select(func.count()).select_from(Box))).scalar() == 0

    @pytest.mark.parametrize("quantity", ["3000000000", "100000000000000000000"])
    async def test_oversized_quantity_rejected(
        self, client: AsyncClient, auth_headers: dict, published: list, db_session, quantity
    ):
        response = await client.post(
            "/api/inventory/scan", json={"barcode": f"ROSES|RED|{quantity}|STEMS"}, headers=auth_headers
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "MALFORMED_INPUT"
        assert error["message"].startswith("Invalid quantity")
        assert published == []
        assert (await db_session.execute(select(func.count()).select_from(Box))).scalar() == 0
        assert (await db_session.execute(select(func.count()).select_from(ActivityLog))).scalar() == 0

    async def test_list_newest_first_and_search(self, client: AsyncClient, auth_headers: dict):
        first = await _intake(client, auth_headers, "ROSES|RED|200|STEMS")
        second = await _intake(client, auth_headers, "TULIPS|YELLOW|150|STEMS")

        response = await client.get("/api/inventory/", headers=auth_headers)
        assert [b["id"] for b in response.json()] == [second["id"], first["id"]]

        response = await client.get("/api/inventory/", params={"search": "yell"}, headers=auth_headers)
        assert [b["id"] for b in response.json()] == [second["id"]]

    async def test_get_box(self, client: AsyncClient, auth_headers: dict):
        box = await _intake(client, auth_headers)

        response = await client.get(f"/api/inventory/{box['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["quantity"] == 200

        response = await client.get("/api/inventory/BOX404", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    async def test_checkout_twice(self, client: AsyncClient, auth_headers: dict):
        box = await _intake(client, auth_headers)

        for _ in range(2):
            response = await client.post(f"/api/inventory/{box['id']}/checkout", headers=auth_headers)
            assert response.status_code == 200
            assert response.json()["box"]["location"] == "checked-out"
            assert response.json()["message"] == f"Box {box['id']} checked out!"

    async def test_checkout_unknown_box(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/inventory/BOX404/checkout", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Box not found: BOX404"


@pytest.mark.api
@pytest.mark.asyncio
class TestLineScanEndpoints:

    async def test_assign_box(self, client: AsyncClient, auth_headers: dict, lines, published: list):
        box = await _intake(client, auth_headers)
        published.clear()

        response = await client.post(
            "/api/lines/3/boxes", json={"box_id": box["id"]}, headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == f"Box {box['id']} assigned to Line 3!"
        assert data["box"]["location"] == "line-3"
        assert data["line"]["status"] == "active"
        assert data["assignment"]["line_id"] == 3
        assert {e.table for e in published} == {
            "inventory", "production_line_items", "production_lines",
        }

        items = await client.get("/api/lines/3/items", headers=auth_headers)
        assert [i["box_id"] for i in items.json()] == [box["id"]]

        all_items = await client.get("/api/line-items/", headers=auth_headers)
        assert len(all_items.json()) == 1

    async def test_assign_to_unknown_line_rolls_back(
        self, client: AsyncClient, auth_headers: dict, lines, published: list, db_session
    ):
        box = await _intake(client, auth_headers)
        published.clear()

        response = await client.post(
            "/api/lines/42/boxes", json={"box_id": box["id"]}, headers=auth_headers
        )

        assert response.status_code == 404
        assert published == []
        stored = await db_session.get(Box, box["id"])
        assert stored.location == "inventory"
        count = (await db_session.execute(select(func.count()).select_from(LineAssignment))).scalar()
        assert count == 0

    async def test_complete_bunch(self, client: AsyncClient, auth_headers: dict, lines):
        response = await client.post(
            "/api/lines/2/bunches", json={"bunch_id": "BUN100"}, headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Bunch BUN100 completed on Line 2!"
        assert data["bunch"]["recipe_name"] == "Unknown"
        assert data["line"]["produced_count"] == 1

        bunches = await client.get("/api/bunches/", headers=auth_headers)
        assert [b["id"] for b in bunches.json()] == ["BUN100"]

    async def test_duplicate_bunch_rejected_by_store(
        self, client: AsyncClient, auth_headers: dict, lines, published: list
    ):
        await client.post("/api/lines/2/bunches", json={"bunch_id": "BUN7"}, headers=auth_headers)
        published.clear()

        response = await client.post(
            "/api/lines/2/bunches", json={"bunch_id": "BUN7"}, headers=auth_headers
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "DUPLICATE_RECORD"
        assert published == []

        line = await client.get("/api/lines/2", headers=auth_headers)
        assert line.json()["produced_count"] == 1

    async def test_activity_written_with_transition(
        self, client: AsyncClient, auth_headers: dict, lines, db_session
    ):
        box = await _intake(client, auth_headers)
        await client.post("/api/lines/1/boxes", json={"box_id": box["id"]}, headers=auth_headers)

        result = await db_session.execute(select(ActivityLog).order_by(ActivityLog.created_at))
        entries = result.scalars().all()
        assert [e.action_type.value for e in entries] == ["ADD_INVENTORY", "ASSIGN_TO_LINE"]
        assert entries[1].details == {"boxId": box["id"], "lineId": 1}
