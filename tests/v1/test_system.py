"""Tests for system and transparency endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from modgate.core.settings import settings


def test_system_config(client: TestClient) -> None:
    """Public configuration is exposed without secrets."""
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert "app" in data and "moderation" in data and "limits" in data
    assert data["moderation"]["provider_configured"] is False
    assert data["moderation"]["hold_policy"] in {"soft", "hard"}
    assert data["limits"] == {"post_max_length": 2000, "comment_max_length": 500}
    assert settings.secret_key not in r.text
    assert "database" not in r.text.lower()


def test_scorer_status_requires_moderator(client: TestClient, auth_token) -> None:
    r = client.get("/api/v1/system/scorer", headers=auth_token)
    assert r.status_code == status.HTTP_403_FORBIDDEN


def test_scorer_status(client: TestClient, auth_token, moderator_token) -> None:
    client.post("/api/v1/content", json={"text": "Hello there"}, headers=auth_token)

    r = client.get("/api/v1/system/scorer", headers=moderator_token)

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["primary"] is None
    assert data["fallback"] == "heuristic"
    assert data["circuit_state"] == "closed"
    assert data["metrics"]["requests"] == 1
    assert data["metrics"]["degraded_by_cause"] == {"unconfigured": 1}
