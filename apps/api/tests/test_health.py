"""Tests for health and readiness endpoints."""

from unittest.mock import patch


def test_health(test_client):
    response = test_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"]["database"] == "up"
    assert body["services"]["redis"] == "disabled"


def test_readyz_ready(test_client):
    response = test_client.get("/readyz")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_readyz_database_down(test_client):
    with patch("hub_api.routers.health.check_database", return_value="down: connection refused"):
        response = test_client.get("/readyz")

    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


def test_health_stays_200_when_database_down(test_client):
    with patch("hub_api.routers.health.check_database", return_value="down: connection refused"):
        response = test_client.get("/health")

    assert response.status_code == 200
