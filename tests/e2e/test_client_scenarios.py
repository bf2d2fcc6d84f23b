"""
E2E scenarios for monitored clients, driven through the HTTP API.

Scenarios:
- first_renewal: contract running on its original terms, renewed once
- renewal_chain: renewals stacked over time, with a payment plan per contract
- legacy_data: a client imported with unusable contract dates
"""

from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient


def test_first_renewal_extends_active_contract(client: TestClient, make_client):
    """
    first_renewal: placed 60 days ago on a 3 month contract
    Expected: renewal chains from the original expiration and validity follows it
    """
    placement = date.today() - timedelta(days=60)
    monitored = make_client(placement_date=placement, contract_date=placement, contract_duration=3)

    before = client.get(f"/v1/clients/{monitored.client_id}/validity").json()
    assert before["status"] == "valid"
    assert before["is_active"] is True
    original_expiration = date.fromisoformat(before["expiration_date"])

    renewed = client.post(f"/v1/clients/{monitored.client_id}/renewals", json={"months": 6})
    assert renewed.status_code == 201
    data = renewed.json()
    assert date.fromisoformat(data["previous_expiration_date"]) == original_expiration
    assert data["renewal_date"] == date.today().isoformat()

    after = client.get(f"/v1/clients/{monitored.client_id}/validity").json()
    assert after["months_contracted"] == 9
    assert after["last_renewal"]["months_added"] == 6
    assert after["last_renewal"]["renewal_date"] == date.today().isoformat()

    again = client.post(f"/v1/clients/{monitored.client_id}/renewals", json={"months": 6})
    assert again.status_code == 409


def test_renewal_chain_with_payment_plans(client: TestClient, make_client):
    """
    renewal_chain: 12 month contract from 2025-01-01, renewed twice
    Expected: each contract instance carries its own plan and the summary adds them up
    """
    monitored = make_client(payment_frequency="Trimestral")
    client_id = monitored.client_id

    original_plan = client.post(
        "/v1/payment-plans",
        json={
            "client_id": client_id,
            "contract_type": "original",
            "contract_start_date": "2025-01-01",
            "contract_end_date": "2026-01-01",
            "contract_amount": "4000.00",
        },
    ).json()
    client.post(
        f"/v1/payment-plans/{original_plan['plan_id']}/installments",
        json={
            "installments": [
                {"scheduled_amount": "1000", "scheduled_date": "2025-01-01", "paid_amount": "1000", "payment_status": "Pagado"},
                {"scheduled_amount": "1000", "scheduled_date": "2025-04-01", "paid_amount": "1000", "payment_status": "Pagado"},
                {"scheduled_amount": "1000", "scheduled_date": "2025-07-01"},
                {"scheduled_amount": "1000", "scheduled_date": "2025-10-01"},
            ]
        },
    )

    first = client.post(f"/v1/clients/{client_id}/renewals", json={"months": 6, "renewal_date": "2025-12-20"}).json()
    assert first["previous_expiration_date"] == "2026-01-01"
    assert first["new_expiration_date"] == "2026-07-01"

    client.put(f"/v1/renewals/{first['renewal_id']}", data={"renewal_amount": "2000.00"})
    plans = client.get(f"/v1/clients/{client_id}/payment-plans").json()
    assert [p["contract_type"] for p in plans] == ["original", "renewal"]
    renewal_plan = plans[1]
    assert renewal_plan["payment_frequency"] == "Trimestral"
    assert renewal_plan["contract_end_date"] == "2026-06-20"

    client.post(
        f"/v1/payment-plans/{renewal_plan['plan_id']}/installments",
        json={"installments": [{"scheduled_amount": "2000", "scheduled_date": "2025-12-20", "paid_amount": "500"}]},
    )

    second = client.post(f"/v1/clients/{client_id}/renewals", json={"months": 3, "renewal_date": "2026-06-01"}).json()
    assert second["previous_expiration_date"] == "2026-06-20"
    assert second["new_expiration_date"] == "2026-09-20"

    history = client.get(f"/v1/clients/{client_id}/renewals/history").json()["renewals"]
    assert [h["months_added"] for h in history] == [3, 6]

    summary = client.get(f"/v1/clients/{client_id}/payment-plans-summary").json()
    assert summary["total_plans"] == 2
    assert Decimal(summary["original"]["total_pending_amount"]) == Decimal("2000")
    assert Decimal(summary["renewals"]["total_pending_amount"]) == Decimal("1500")
    assert Decimal(summary["total_scheduled_amount"]) == Decimal("6000")
    assert Decimal(summary["total_paid_amount"]) == Decimal("2500")

    audit = client.get(f"/v1/clients/{client_id}/audit-log").json()["entries"]
    assert {e["action_type"] for e in audit} >= {"CREATE", "RENEWAL", "UPDATE"}


def test_legacy_client_with_unusable_dates(client: TestClient, make_client):
    """
    legacy_data: dates outside the supported range and no duration
    Expected: validity is indeterminate, never active, and renewal is refused
    """
    monitored = make_client(placement_date=date(1900, 1, 1), contract_date=None, contract_duration=None)

    validity = client.get(f"/v1/clients/{monitored.client_id}/validity").json()
    assert validity["status"] == "indeterminate"
    assert validity["is_active"] is False
    assert validity["placement_date"] == "N/A"
    assert validity["contract_duration"] == "N/A"

    renewal = client.post(f"/v1/clients/{monitored.client_id}/renewals", json={"months": 6})
    assert renewal.status_code == 422
