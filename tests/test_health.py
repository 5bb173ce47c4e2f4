"""Smoke tests for the health and root endpoints."""

from fastapi.testclient import TestClient


def test_health(client: TestClient):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "healthy",
        "service": "adaptive-learning-engine",
        "catalog": "up",
    }


def test_health_reports_catalog_down(client: TestClient, catalog):
    catalog.reachable = False
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["catalog"] == "down"


def test_root(client: TestClient):
    data = client.get("/").json()
    assert data["docs"] == "/docs"
