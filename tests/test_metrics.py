import pytest
from unittest.mock import patch

@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    res = await client.get("/api/metrics")
    assert res.status_code == 200

    data = res.json()

    # Check structure
    assert data["status"] == "Online"
    assert "cpu" in data
    assert "ram" in data
    assert data["database"] == "Connected"

    # Check data types
    assert isinstance(data["uptime"], int)
    assert isinstance(data["version"], str)


@pytest.mark.asyncio
async def test_root_health_check(client):
    res = await client.get("/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_run_serves_app_with_uvicorn(monkeypatch):
    from leaveflow import main
    from leaveflow.core.config import settings

    monkeypatch.setattr(settings, "ENV", "prod")
    with patch("leaveflow.main.uvicorn.run") as mock_run:
        main.run()

    mock_run.assert_called_once_with(
        "leaveflow.main:app", host=settings.HOST, port=settings.PORT, reload=False
    )
