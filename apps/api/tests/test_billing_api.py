from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.main import app


EMPTY_PAGING = {
    "offset": None,
    "limit": None,
    "total": None,
    "totalPages": None,
    "hasNext": None,
    "hasPrev": None,
}

TIERS = [
    {"min_seats": 1, "max_seats": 10, "price_per_seat": "100"},
    {"min_seats": 11, "max_seats": 50, "price_per_seat": "90"},
    {"min_seats": 51, "max_seats": None, "price_per_seat": "80"},
]


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


def _contract(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "contract_id": "ctr-api-1",
        "contract_number": "CTR-2026-0042",
        "status": "active",
        "start_date": "2026-01-01",
        "end_date": "2026-12-31",
        "contract_value": "24000",
        "billing_frequency": "monthly",
    }
    payload.update(overrides)
    return payload


def test_seat_pricing_returns_single_resource_envelope(client: TestClient) -> None:
    response = client.post(
        "/api/billing/seat-pricing",
        json={"seat_count": 100, "base_price_per_seat": "100", "volume_tiers": TIERS},
    )
    assert response.status_code == 200

    body = response.json()
    assert body["paging"] == EMPTY_PAGING
    assert body["data"]["price_per_seat"] == "80"
    assert body["data"]["subtotal"] == "8000"
    assert body["data"]["applied_tier"]["min_seats"] == "51"
    assert body["data"]["applied_tier"]["max_seats"] is None


def test_seat_pricing_without_match_omits_tier(client: TestClient) -> None:
    response = client.post(
        "/api/billing/seat-pricing",
        json={
            "seat_count": 5,
            "base_price_per_seat": "100",
            "volume_tiers": [
                {"min_seats": 10, "max_seats": 50, "price_per_seat": "90"},
                {"min_seats": 51, "max_seats": 100, "price_per_seat": "80"},
            ],
        },
    )
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["price_per_seat"] == "100"
    assert data["subtotal"] == "500"
    assert data["applied_tier"] is None


def test_proration_keeps_decimal_digits_on_the_wire(client: TestClient) -> None:
    response = client.post(
        "/api/billing/proration",
        json={"full_amount": "99.99", "total_days": 30, "used_days": 15},
    )
    assert response.status_code == 200
    assert response.json()["data"]["prorated_amount"] == "49.995"


def test_proration_over_empty_period_is_zero(client: TestClient) -> None:
    response = client.post(
        "/api/billing/proration",
        json={"full_amount": "1200", "total_days": 0, "used_days": 30},
    )
    assert response.status_code == 200
    assert response.json()["data"]["prorated_amount"] == "0"


def test_invoice_preview_returns_draft_invoice(client: TestClient) -> None:
    response = client.post(
        "/api/billing/invoices/preview",
        json={
            "contract": _contract(seat_count=25, seat_price="100", volume_tiers=TIERS),
            "product": {"charge_type": "recurring", "setup_fee": "500"},
            "period_start": "2026-01-01",
            "issue_date": "2026-01-01",
            "invoice_sequence": 3,
        },
    )
    assert response.status_code == 200

    body = response.json()
    assert body["paging"] == EMPTY_PAGING
    invoice = body["data"]
    assert invoice["invoice_number"] == "INV-2026-000003"
    assert invoice["status"] == "draft"
    assert invoice["period_end"] == "2026-02-01"
    assert invoice["due_date"] == "2026-01-31"
    assert [line["amount"] for line in invoice["lines"]] == ["2250", "500"]
    assert invoice["total"] == "2750"


def test_invoice_preview_for_inactive_contract_returns_error_envelope(client: TestClient) -> None:
    response = client.post(
        "/api/billing/invoices/preview",
        json={"contract": _contract(status="cancelled"), "period_start": "2026-02-01"},
        headers={"X-Correlation-Id": "corr-preview-1"},
    )
    assert response.status_code == 422

    body = response.json()
    assert body["code"] == "CONTRACT_NOT_ACTIVE"
    assert body["correlation_id"] == "corr-preview-1"
    assert "ctr-api-1" in body["message"]


def test_invoice_preview_skipped_for_usage_based_product(client: TestClient) -> None:
    response = client.post(
        "/api/billing/invoices/preview",
        json={"contract": _contract(), "product": {"charge_type": "usage_based"}, "period_start": "2026-02-01"},
    )
    assert response.status_code == 422
    assert response.json()["code"] == "BILLING_SKIPPED"


def test_validation_errors_use_error_envelope(client: TestClient) -> None:
    response = client.post(
        "/api/billing/invoices/preview",
        json={"contract": _contract(end_date="2025-12-31")},
        headers={"X-Correlation-Id": "corr-invalid-1"},
    )
    assert response.status_code == 422

    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["correlation_id"] == "corr-invalid-1"
    assert body["details"]


def test_billing_frequencies_use_non_paginated_envelope(client: TestClient) -> None:
    response = client.get("/api/billing/billing-frequencies")
    assert response.status_code == 200

    body = response.json()
    assert body["data"] == ["monthly", "quarterly", "annual"]
    assert body["paging"]["total"] == 3
    assert body["paging"]["totalPages"] is None


def test_health_reports_service(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "Revenova Billing API"
