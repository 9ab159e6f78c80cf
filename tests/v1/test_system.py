"""Tests for the service status endpoints."""

from fastapi import status
from fastapi.testclient import TestClient


def test_status_with_ledger_disabled(client: TestClient) -> None:
    r = client.get("/api/status")

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["success"] is True
    assert data["status"] == "uninitialized"
    assert data["database"] == "connected"
    assert data["signer"] is True
    assert data["ledger"]["monitor"] == "unknown"
    assert data["ingestion"]["cursor"] is None
    assert data["ingestion"]["live"] is False


def test_ping(client: TestClient) -> None:
    r = client.get("/api/ping")

    assert r.status_code == status.HTTP_200_OK
    assert r.text == "pong"


def test_health(client: TestClient) -> None:
    r = client.get("/api/health")

    assert r.json() == {"status": "ok"}
