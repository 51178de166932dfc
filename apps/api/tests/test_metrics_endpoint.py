from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from app.core.auth import AuthUser, get_current_user as auth_get_current_user
from app.core.config import get_settings
from app.main import app


@pytest.fixture(autouse=True)
def configure_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    def override_auth_user() -> AuthUser:
        return AuthUser(sub="metrics-admin", roles=["system.metrics.read"])

    app.dependency_overrides[auth_get_current_user] = override_auth_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_metrics_endpoint_exposes_http_and_billing_metrics(client: TestClient) -> None:
    health = client.get("/health")
    assert health.status_code == 200

    pricing = client.post(
        "/api/billing/seat-pricing",
        json={
            "seat_count": 25,
            "base_price_per_seat": "100",
            "volume_tiers": [{"min_seats": 11, "max_seats": 50, "price_per_seat": "90"}],
        },
    )
    assert pricing.status_code == 200

    base_pricing = client.post("/api/billing/seat-pricing", json={"seat_count": 3, "base_price_per_seat": "10"})
    assert base_pricing.status_code == 200

    proration = client.post("/api/billing/proration", json={"full_amount": "300", "total_days": 30, "used_days": 10})
    assert proration.status_code == 200

    over_usage = client.post("/api/billing/proration", json={"full_amount": "300", "total_days": 30, "used_days": 45})
    assert over_usage.status_code == 200
    assert over_usage.json()["data"]["prorated_amount"] == "450"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert metrics.headers["content-type"].startswith("text/plain")

    body = metrics.text
    assert 'http_requests_total{method="GET",path="/health",status="200"}' in body
    assert 'http_requests_total{method="POST",path="/api/billing/seat-pricing",status="200"}' in body
    assert "http_request_duration_seconds_bucket" in body
    assert 'billing_seat_pricing_total{tier="applied"}' in body
    assert 'billing_seat_pricing_total{tier="base"}' in body
    assert 'billing_proration_total{outcome="partial"}' in body
    assert 'billing_proration_total{outcome="over"}' in body


def test_invoice_preview_outcomes_are_counted(client: TestClient) -> None:
    contract = {
        "contract_id": "ctr-metrics-1",
        "start_date": "2026-01-01",
        "end_date": "2026-12-31",
        "contract_value": "1200",
    }
    generated = client.post("/api/billing/invoices/preview", json={"contract": contract, "period_start": "2026-02-01"})
    assert generated.status_code == 200

    skipped = client.post(
        "/api/billing/invoices/preview",
        json={"contract": contract, "product": {"charge_type": "usage_based"}, "period_start": "2026-02-01"},
    )
    assert skipped.status_code == 422

    body = client.get("/metrics").text
    assert 'billing_invoice_previews_total{status="generated"}' in body
    assert 'billing_invoice_previews_total{status="skipped"}' in body


def test_metrics_endpoint_hidden_when_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "false")
    get_settings.cache_clear()

    response = client.get("/metrics")
    assert response.status_code == 404


def test_metrics_endpoint_requires_role(monkeypatch: pytest.MonkeyPatch) -> None:
    app.dependency_overrides[auth_get_current_user] = lambda: AuthUser(sub="viewer", roles=["user"])
    try:
        with TestClient(app) as test_client:
            response = test_client.get("/metrics")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 403
