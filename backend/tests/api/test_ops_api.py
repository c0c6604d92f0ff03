import pytest


@pytest.mark.asyncio
async def test_liveness(api_client):
    response = await api_client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers.get("X-Request-Id")


@pytest.mark.asyncio
async def test_readiness_with_memory_store(api_client):
    response = await api_client.get("/health/ready")

    assert response.status_code == 200
    checks = response.json()["checks"]
    assert checks["redis"]["ok"] is True
    assert checks["postgres"]["skipped"] == "memory_store"


@pytest.mark.asyncio
async def test_request_id_is_echoed(api_client):
    response = await api_client.get("/health/live", headers={"X-Request-Id": "req-123"})
    assert response.headers["X-Request-Id"] == "req-123"


@pytest.mark.asyncio
async def test_metrics_exposed(api_client, befriend):
    await befriend("alice", "bob")

    response = await api_client.get("/metrics")

    assert response.status_code == 200
    assert "rapport_friendships_created_total" in response.text
