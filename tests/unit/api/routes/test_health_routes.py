from fastapi import FastAPI
from fastapi.testclient import TestClient


def test_liveness_check(client: TestClient) -> None:
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200
    assert response.json()["alive"] is True


def test_health_check_healthy(client: TestClient) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "version": "1.0.0-test",
        "provider": {"provider": "openai", "configured": True},
    }


def test_health_check_degraded_without_client(app: FastAPI, client: TestClient) -> None:
    app.state.completion_client = None

    response = client.get("/api/v1/health")

    assert response.json()["status"] == "degraded"
    assert response.json()["provider"]["configured"] is False
