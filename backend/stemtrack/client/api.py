"""Async HTTP client for the StemTrack API.

Every call returns the decoded JSON body on success and raises a
stemtrack.client.errors.ClientError subclass otherwise. Scan calls return
immediate feedback only; LocalStore is updated from the change feed.

Usage:
    async with StemTrackClient("http://localhost:8000") as api:
        await api.login("ops@example.com", "secret1")
        await api.add_to_inventory("ROSES|RED|200|STEMS")
"""

import logging
from typing import Any

import httpx

from stemtrack.client.errors import BackendError, error_from_response

logger = logging.getLogger(__name__)


class StemTrackClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        # No timeout: a stalled scan stays open until the user cancels
        self._http = httpx.AsyncClient(
            base_url=self.base_url, transport=transport, timeout=timeout
        )

    async def __aenter__(self) -> "StemTrackClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise BackendError(str(e) or e.__class__.__name__) from e

        if response.status_code >= 400:
            raise error_from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ── Auth ─────────────────────────────────────────────────

    async def register(self, email: str, password: str) -> dict:
        return await self._request(
            "POST", "/api/auth/register", json={"email": email, "password": password}
        )

    async def verify(self, token: str) -> dict:
        return await self._request("POST", "/api/auth/verify", json={"token": token})

    async def login(self, email: str, password: str) -> dict:
        data = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        self.token = data["access_token"]
        return data

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout")
        self.token = None

    async def me(self) -> dict:
        return await self._request("GET", "/api/auth/me")

    # ── Scans ────────────────────────────────────────────────

    async def add_to_inventory(self, barcode: str) -> dict:
        return await self._request("POST", "/api/inventory/scan", json={"barcode": barcode})

    async def checkout_box(self, box_id: str) -> dict:
        return await self._request("POST", f"/api/inventory/{box_id}/checkout")

    async def assign_to_line(self, box_id: str, line_id: int) -> dict:
        return await self._request(
            "POST", f"/api/lines/{line_id}/boxes", json={"box_id": box_id}
        )

    async def complete_bunch(self, bunch_id: str, line_id: int) -> dict:
        return await self._request(
            "POST", f"/api/lines/{line_id}/bunches", json={"bunch_id": bunch_id}
        )

    # ── Recipes & lines ──────────────────────────────────────

    async def create_recipe(self, name: str, flowers: list[dict]) -> dict:
        return await self._request(
            "POST", "/api/recipes/", json={"name": name, "flowers": flowers}
        )

    async def update_line(self, line_id: int, **changes) -> dict:
        return await self._request("PATCH", f"/api/lines/{line_id}", json=changes)

    # ── Reads ────────────────────────────────────────────────

    async def list_boxes(self, search: str | None = None) -> list[dict]:
        params = {"search": search} if search else None
        return await self._request("GET", "/api/inventory/", params=params)

    async def get_box(self, box_id: str) -> dict:
        return await self._request("GET", f"/api/inventory/{box_id}")

    async def list_lines(self) -> list[dict]:
        return await self._request("GET", "/api/lines/")

    async def list_line_items(self) -> list[dict]:
        return await self._request("GET", "/api/line-items/")

    async def list_recipes(self) -> list[dict]:
        return await self._request("GET", "/api/recipes/")

    async def list_bunches(self) -> list[dict]:
        return await self._request("GET", "/api/bunches/")

    async def dashboard(self) -> dict:
        return await self._request("GET", "/api/dashboard/")
