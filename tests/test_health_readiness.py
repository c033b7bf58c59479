from __future__ import annotations

import pytest
from fastapi import HTTPException

import app.core.health as health_module


@pytest.mark.asyncio
async def test_readiness_check_returns_ready_when_database_is_available(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _ready() -> bool:
        return True

    monkeypatch.setattr(health_module, "_is_database_ready", _ready)

    response = await health_module.readiness_check()

    assert response["status"] == "ready"
    assert response["database"] == "ok"
    assert "timestamp" in response


@pytest.mark.asyncio
async def test_readiness_check_returns_503_when_database_is_unavailable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _not_ready() -> bool:
        return False

    monkeypatch.setattr(health_module, "_is_database_ready", _not_ready)

    with pytest.raises(HTTPException) as exc:
        await health_module.readiness_check()
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_liveness_check_does_not_touch_database() -> None:
    assert await health_module.healthcheck() == {"status": "ok"}


@pytest.mark.asyncio
async def test_database_probe_reports_failure_instead_of_raising(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    class _BrokenSession:
        async def __aenter__(self):
            raise ConnectionRefusedError("database is down")

        async def __aexit__(self, *_: object) -> None:
            return None

    monkeypatch.setattr(health_module, "SessionLocal", lambda: _BrokenSession())

    assert await health_module._is_database_ready() is False


def test_app_mounts_probes_at_root_and_modules_under_api_prefix() -> None:
    from app.main import app

    paths = {route.path for route in app.routes}

    assert {"/health", "/ready", "/metrics"} <= paths
    assert "/api/v1/booking/{booking_id}/cancel" in paths
    assert "/api/v1/scheduling/patterns/sweep" in paths
