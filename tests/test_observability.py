from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from hocpay_api.app import create_app
from hocpay_api.core.logging import _build_payload
from hocpay_api.core.settings import settings
from hocpay_api.observability.tracing import _parse_headers


@pytest.mark.asyncio
async def test_rewards_snapshot_requires_key(rewards_store) -> None:
    app = create_app()
    previous_key = settings.internal_api_key
    settings.internal_api_key = "snapshot-key"

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/v1/observability/rewards")
        assert response.status_code == 401
    finally:
        settings.internal_api_key = previous_key


@pytest.mark.asyncio
async def test_rewards_snapshot_reports_strategies(rewards_store) -> None:
    app = create_app()
    rewards_store.record_failure("count_active", "server_count")
    rewards_store.record_strategy("count_active", "scan")
    rewards_store.record_exhausted("recent_active")
    rewards_store.record_plan_change("accepted")

    previous_key = settings.internal_api_key
    settings.internal_api_key = "snapshot-key"

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get(
                "/api/v1/observability/rewards",
                headers={"X-API-Key": "snapshot-key"},
            )
            metrics = await client.get(
                "/api/v1/observability/prometheus",
                headers={"X-API-Key": "snapshot-key"},
            )
    finally:
        settings.internal_api_key = previous_key

    assert response.status_code == 200
    payload = response.json()
    assert payload["strategies"] == {"count_active": {"scan": 1}}
    assert payload["failures"] == {"count_active": {"server_count": 1}}
    assert payload["exhausted"] == {"recent_active": 1}
    assert payload["plan_changes"] == {"accepted": 1}

    assert metrics.status_code == 200
    body = metrics.text
    assert 'hocpay_rewards_aggregation_served_total{operation="count_active",strategy="scan"} 1' in body
    assert 'hocpay_rewards_aggregation_exhausted_total{operation="recent_active"} 1' in body
    assert 'hocpay_rewards_plan_changes_total{outcome="accepted"} 1' in body


def test_snapshot_reset_clears_counters(rewards_store) -> None:
    rewards_store.record_strategy("count_all", "server_count")
    rewards_store.reset()

    assert rewards_store.snapshot().as_dict() == {
        "strategies": {},
        "failures": {},
        "exhausted": {},
        "plan_changes": {},
    }


def test_log_payload_carries_service_metadata_and_context() -> None:
    record = {
        "time": datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc),
        "level": SimpleNamespace(name="WARNING"),
        "message": "Aggregation strategy failed",
        "name": "hocpay_api.services.rewards.fallback",
        "extra": {"operation": "count_active", "strategy": "server_count"},
        "exception": None,
    }

    payload = _build_payload(record, {"service_name": "hocpay-api", "environment": "development", "version": "0.1.0"})

    assert payload["level"] == "warning"
    assert payload["service"] == "hocpay-api"
    assert payload["operation"] == "count_active"
    assert payload["strategy"] == "server_count"
    assert "trace_id" not in payload


def test_app_is_instrumented_when_tracing_enabled(monkeypatch) -> None:
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_ENDPOINT", raising=False)
    monkeypatch.setattr(settings, "otel_enabled", True)

    app = create_app()

    assert getattr(app, "_is_instrumented_by_opentelemetry", False) is True


def test_otlp_headers_are_parsed() -> None:
    assert _parse_headers(None) is None
    assert _parse_headers("authorization=Bearer abc, x-tenant=hocpay,broken") == {
        "authorization": "Bearer abc",
        "x-tenant": "hocpay",
    }
