"""Tests for the FastAPI adapter."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from command_router import create_router
from command_router.adapters.web_fastapi.app import create_app
from command_router.config import RouterSettings


@pytest.fixture
def client(tmp_path):
    router = create_router(settings=RouterSettings(use_mock_llm=True, trace_dir=str(tmp_path)))
    with TestClient(create_app(router)) as test_client:
        yield test_client


class TestWebAdapter:
    def test_route(self, client):
        resp = client.post("/route", json={"text": "deploy judo to vercel"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["text"] == "vercel deploy judo"
        assert body["source"] == "pattern"
        assert body["command"]["verb"] == "vercel"

    def test_route_with_context(self, client):
        resp = client.post("/route", json={"text": "deploy", "context": {"active_repo": "judo"}})
        assert resp.json()["text"] == "deploy judo"

    def test_dispatch(self, client):
        resp = client.post("/dispatch", json={"command": "vercel preview judo"})
        body = resp.json()
        assert body["status"] == "handled"
        assert body["skill"] == "vercel"
        assert body["data"]["url"] == "https://judo-preview.vercel.app"

    def test_metrics_and_reset(self, client):
        client.post("/route", json={"text": "deploy judo"})
        client.post("/route", json={"text": "thanks"})
        metrics = client.get("/metrics").json()
        assert metrics["pattern_hits"] == 1
        assert metrics["passthroughs"] == 1
        assert metrics["total"] == 2

        assert client.post("/metrics/reset").json() == {"status": "ok"}
        assert client.get("/metrics").json()["total"] == 0

    def test_health(self, client):
        client.post("/route", json={"text": "deploy judo"})
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["cache"]["size"] == 1

    def test_missing_text_rejected(self, client):
        assert client.post("/route", json={}).status_code == 422
