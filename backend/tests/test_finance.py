"""
Tests for the finance report endpoints.

The reporting views are plain tables in the test database, so rows are
inserted directly.

Run with: pytest backend/tests/test_finance.py -v
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import insert

from qclab.models import client_billing_summary, lab_payment_summary, lab_sample_breakdown
from qclab.models.enums import QCRole

from conftest import make_ctx


@pytest.fixture
async def billing_rows(db):
    await db.execute(insert(client_billing_summary), [
        {
            "client_id": uuid.uuid4(), "client_name": "Dunkin", "company": "Dunkin Brands",
            "pricing_model": "per_sample", "has_origin_pricing": False, "currency": "USD",
            "total_samples": 10, "approved_samples": 8,
            "total_billable_amount": Decimal("360.00"), "total_potential_amount": Decimal("450.00"),
        },
        {
            "client_id": uuid.uuid4(), "client_name": "Maria", "company": "Roastery Co",
            "pricing_model": "per_pound", "has_origin_pricing": True, "currency": "USD",
            "total_samples": 4, "approved_samples": 4,
            "total_billable_amount": Decimal("880.50"), "total_potential_amount": Decimal("880.50"),
        },
    ])
    await db.commit()


class TestClientBilling:

    async def test_totals(self, api, billing_rows):
        resp = await api.get("/api/v1/finance/reports/client-billing")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert [c["client_name"] for c in data["clients"]] == ["Maria", "Dunkin"]
        totals = data["totals"]
        assert totals["total_clients"] == 2
        assert totals["total_samples"] == 14
        assert Decimal(totals["total_billable"]) == Decimal("1240.50")
        assert Decimal(totals["total_potential"]) == Decimal("1330.50")

    async def test_origin_pricing_filter(self, api, billing_rows):
        resp = await api.get(
            "/api/v1/finance/reports/client-billing", params={"has_origin_pricing": "true"}
        )
        data = resp.json()["data"]
        assert [c["client_name"] for c in data["clients"]] == ["Maria"]

    async def test_non_finance_role_is_403(self, api, auth):
        auth["ctx"] = make_ctx(QCRole.LAB_ASSISTANT)
        resp = await api.get("/api/v1/finance/reports/client-billing")
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Insufficient permissions"

    async def test_lab_finance_manager_allowed(self, api, auth):
        auth["ctx"] = make_ctx(QCRole.LAB_FINANCE_MANAGER)
        resp = await api.get("/api/v1/finance/reports/client-billing")
        assert resp.status_code == 200
        assert resp.json()["data"]["totals"]["total_clients"] == 0


class TestLabReports:

    async def test_lab_breakdown_approval_rate(self, api, db):
        await db.execute(insert(lab_sample_breakdown), [
            {"laboratory_id": uuid.uuid4(), "laboratory_name": "Santos HQ", "lab_type": "hq",
             "total_samples": 30, "approved_samples": 20, "rejected_samples": 5,
             "pending_samples": 5, "approval_rate": Decimal("66.67")},
            {"laboratory_id": uuid.uuid4(), "laboratory_name": "Guatemala Lab",
             "lab_type": "regional", "total_samples": 10, "approved_samples": 9,
             "rejected_samples": 1, "pending_samples": 0, "approval_rate": Decimal("90.00")},
        ])
        await db.commit()

        totals = (await api.get("/api/v1/finance/reports/lab-breakdown")).json()["data"]["totals"]
        assert totals["total_labs"] == 2
        assert totals["total_samples"] == 40
        assert totals["total_approved"] == 29
        assert totals["total_rejected"] == 6
        assert totals["overall_approval_rate"] == 72.5

    async def test_empty_breakdown_rate_is_zero(self, api):
        totals = (await api.get("/api/v1/finance/reports/lab-breakdown")).json()["data"]["totals"]
        assert totals["overall_approval_rate"] == 0

    async def test_lab_payments(self, api, db):
        await db.execute(insert(lab_payment_summary), [
            {"laboratory_id": uuid.uuid4(), "laboratory_name": "Guatemala Lab", "currency": "USD",
             "total_samples": 12, "total_owed_amount": Decimal("240.00"),
             "total_potential_amount": Decimal("300.00")},
        ])
        await db.commit()

        data = (await api.get("/api/v1/finance/reports/lab-payments")).json()["data"]
        assert data["laboratories"][0]["laboratory_name"] == "Guatemala Lab"
        assert Decimal(data["totals"]["total_owed"]) == Decimal("240.00")
        assert data["totals"]["total_samples"] == 12
