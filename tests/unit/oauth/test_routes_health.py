"""Tests for the liveness and readiness probes."""

from fastapi import FastAPI
from httpx import AsyncClient


class TestProbes:
    """Tests for /internal/isalive and /internal/isready."""

    async def test_isalive(self, client: AsyncClient) -> None:
        resp = await client.get("/internal/isalive")
        assert resp.status_code == 200
        assert resp.json() == {"status": "alive"}

    async def test_isready(self, client: AsyncClient) -> None:
        resp = await client.get("/internal/isready")
        assert resp.status_code == 200

    async def test_not_ready_without_components(
        self, app: FastAPI, client: AsyncClient
    ) -> None:
        app.state.components = None
        resp = await client.get("/internal/isready")
        assert resp.status_code == 503

    async def test_call_id_propagated(self, client: AsyncClient) -> None:
        resp = await client.get("/internal/isalive", headers={"X-Request-ID": "abc-123"})
        assert resp.headers["x-request-id"] == "abc-123"

    async def test_call_id_generated(self, client: AsyncClient) -> None:
        resp = await client.get("/internal/isalive")
        assert resp.headers["x-request-id"]
