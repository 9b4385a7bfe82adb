"""
Tests for client search, the client directory, origin pricing and quality
specifications.

Tests cover:
- client search validation and source tagging
- client create and update, including null handling on required fields
- origin pricing upsert, update and delete
- quality specification assignment and its in-use guards

Run with: pytest backend/tests/test_clients.py -v
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from qclab.models import AuditLog, Client, QualityTemplate, Sample
from qclab.models.enums import QCRole

from conftest import make_ctx


class TestSearch:

    async def test_short_term_is_rejected_before_search(self, api, procedures):
        resp = await api.get("/api/v1/clients/search", params={"q": " a "})
        assert resp.status_code == 400
        assert procedures.calls == []

    async def test_missing_term_is_400(self, api, procedures):
        resp = await api.get("/api/v1/clients/search")
        assert resp.status_code == 400
        assert procedures.calls == []

    async def test_results_are_tagged_by_source(self, api, client_id, procedures):
        resp = await api.get("/api/v1/clients/search", params={"q": "dunk", "limit": 5})
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"] == {"count": 1, "search_term": "dunk", "limit": 5}
        result = body["data"][0]
        assert result["id"] == str(client_id)
        assert result["is_qc_client"] is True
        assert result["can_import"] is False
        assert procedures.calls == [("search_clients",)]


class TestDirectory:

    async def test_create_defaults_fantasy_name(self, api):
        resp = await api.post("/api/v1/clients", json={
            "name": "Maria", "company": "Roastery Co", "email": "maria@roastery.com",
        })
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["fantasy_name"] == "Roastery Co"
        assert data["has_origin_pricing"] is False

    async def test_duplicate_email_is_409(self, api):
        body = {"name": "Maria", "company": "Roastery Co", "email": "maria@roastery.com"}
        first = await api.post("/api/v1/clients", json=body)
        resp = await api.post("/api/v1/clients", json=body)
        assert resp.status_code == 409
        existing = resp.json()["error"]["details"]["existing_client"]
        assert existing["id"] == first.json()["data"]["id"]

    async def test_invalid_tracking_format_is_422(self, api):
        resp = await api.post("/api/v1/clients", json={
            "name": "Maria", "company": "Roastery Co", "tracking_number_format": "{nope}-{seq}",
        })
        assert resp.status_code == 422

    async def test_create_requires_admin(self, api, auth):
        auth["ctx"] = make_ctx(QCRole.LAB_ASSISTANT)
        resp = await api.post("/api/v1/clients", json={"name": "Maria", "company": "Roastery Co"})
        assert resp.status_code == 403

    async def test_update_is_audited(self, api, db, client_id):
        resp = await api.patch(f"/api/v1/clients/{client_id}", json={"city": "Santos"})
        assert resp.status_code == 200
        assert resp.json()["data"]["city"] == "Santos"
        entry = (await db.execute(
            select(AuditLog).where(AuditLog.entity_id == client_id)
        )).scalar_one()
        assert entry.new_values == {"city": "Santos"}

    async def test_null_for_required_field_is_400(self, api, db, client_id):
        resp = await api.patch(f"/api/v1/clients/{client_id}", json={"name": None})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"] == {"field": "name"}

        client = await db.get(Client, client_id)
        await db.refresh(client)
        assert client.name == "Dunkin"

    async def test_null_for_optional_field_clears_it(self, api, client_id):
        await api.patch(f"/api/v1/clients/{client_id}", json={"city": "Santos"})
        resp = await api.patch(f"/api/v1/clients/{client_id}", json={"city": None})
        assert resp.status_code == 200
        assert resp.json()["data"]["city"] is None

    async def test_list_search(self, api, client_id):
        resp = await api.get("/api/v1/clients", params={"search": "brands"})
        body = resp.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["id"] == str(client_id)

    async def test_unknown_client_is_404(self, api):
        assert (await api.get(f"/api/v1/clients/{uuid.uuid4()}")).status_code == 404


class TestOriginPricing:

    async def test_upsert_sets_flag(self, api, db, client_id):
        url = f"/api/v1/clients/{client_id}/origin-pricing"
        resp = await api.post(url, json={
            "origin": "Brazil", "pricing_model": "per_pound", "price_per_pound_cents": "0.5",
        })
        assert resp.status_code == 200
        assert resp.json()["data"]["price_per_sample"] is None

        listing = (await api.get(url)).json()["data"]
        assert listing["has_origin_pricing"] is True
        assert [p["origin"] for p in listing["origin_pricing"]] == ["Brazil"]

    async def test_upsert_replaces_existing(self, api, client_id):
        url = f"/api/v1/clients/{client_id}/origin-pricing"
        await api.post(url, json={"origin": "Brazil", "pricing_model": "per_sample",
                                  "price_per_sample": "40"})
        await api.post(url, json={"origin": "Brazil", "pricing_model": "per_sample",
                                  "price_per_sample": "55"})
        listing = (await api.get(url)).json()["data"]["origin_pricing"]
        assert len(listing) == 1
        assert Decimal(listing[0]["price_per_sample"]) == Decimal("55")

    async def test_rate_below_floor_is_400(self, api, client_id):
        resp = await api.post(f"/api/v1/clients/{client_id}/origin-pricing", json={
            "origin": "Brazil", "pricing_model": "per_pound", "price_per_pound_cents": "0.1",
        })
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Price per pound must be at least 0.25¢"

    async def test_delete_last_clears_flag(self, api, db, client_id):
        url = f"/api/v1/clients/{client_id}/origin-pricing"
        await api.post(url, json={"origin": "Colombia", "pricing_model": "per_sample",
                                  "price_per_sample": "30"})
        resp = await api.delete(f"{url}/Colombia")
        assert resp.status_code == 200

        client = await db.get(Client, client_id)
        await db.refresh(client)
        assert client.has_origin_pricing is False

    async def test_update_missing_origin_is_404(self, api, client_id):
        resp = await api.patch(
            f"/api/v1/clients/{client_id}/origin-pricing/Kenya", json={"is_active": False}
        )
        assert resp.status_code == 404

    async def test_null_pricing_model_is_400(self, api, client_id):
        url = f"/api/v1/clients/{client_id}/origin-pricing"
        await api.post(url, json={"origin": "Brazil", "pricing_model": "per_sample",
                                  "price_per_sample": "40"})

        resp = await api.patch(f"{url}/Brazil", json={"pricing_model": None})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"] == {"field": "pricing_model"}

        listing = (await api.get(url)).json()["data"]["origin_pricing"]
        assert listing[0]["pricing_model"] == "per_sample"


class TestQualitySpecifications:

    @pytest.fixture
    async def template_id(self, db):
        template = QualityTemplate(id=uuid.uuid4(), name="SCA", name_en="SCA Specialty",
                                   parameters={})
        db.add(template)
        await db.commit()
        return template.id

    @staticmethod
    def url(client_id, spec_id=None):
        base = f"/api/v1/clients/{client_id}/quality-specifications"
        return f"{base}/{spec_id}" if spec_id else base

    async def test_create_and_list(self, api, client_id, template_id):
        resp = await api.post(self.url(client_id), json={
            "template_id": str(template_id), "origin": " Brazil ",
        })
        assert resp.status_code == 201
        spec = resp.json()["data"]
        assert spec["origin"] == "Brazil"
        assert spec["custom_parameters"] == {}
        assert spec["template"]["name_en"] == "SCA Specialty"

        listing = await api.get(self.url(client_id))
        assert listing.json()["meta"] == {"total": 1}
        assert listing.json()["data"][0]["id"] == spec["id"]

    async def test_missing_template_is_400(self, api, client_id):
        resp = await api.post(self.url(client_id), json={"origin": "Brazil"})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Missing required field: template_id"

    async def test_unknown_template_is_404(self, api, client_id):
        resp = await api.post(self.url(client_id), json={"template_id": str(uuid.uuid4())})
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Invalid template_id: template not found"

    async def test_duplicate_assignment_is_409(self, api, client_id, template_id):
        body = {"template_id": str(template_id), "origin": "Brazil"}
        first = await api.post(self.url(client_id), json=body)
        resp = await api.post(self.url(client_id), json=body)
        assert resp.status_code == 409
        assert resp.json()["error"]["details"] == {"existing_id": first.json()["data"]["id"]}

    async def test_same_template_for_another_origin(self, api, client_id, template_id):
        await api.post(self.url(client_id), json={"template_id": str(template_id)})
        resp = await api.post(self.url(client_id), json={
            "template_id": str(template_id), "origin": "Colombia",
        })
        assert resp.status_code == 201

    async def test_assistant_cannot_create(self, api, auth, client_id, template_id, lab_id):
        auth["ctx"] = make_ctx(QCRole.LAB_ASSISTANT, laboratory_id=lab_id)
        resp = await api.post(self.url(client_id), json={"template_id": str(template_id)})
        assert resp.status_code == 403

    async def test_update_custom_parameters(self, api, client_id, template_id):
        spec = (await api.post(self.url(client_id), json={
            "template_id": str(template_id),
        })).json()["data"]
        resp = await api.patch(self.url(client_id, spec["id"]), json={
            "custom_parameters": {"moisture_max": 11.5},
        })
        assert resp.status_code == 200
        assert resp.json()["data"]["custom_parameters"] == {"moisture_max": 11.5}

    async def test_template_change_while_in_use_is_409(
        self, api, db, client_id, lab_id, template_id
    ):
        spec = (await api.post(self.url(client_id), json={
            "template_id": str(template_id), "origin": "Brazil",
        })).json()["data"]
        other = QualityTemplate(id=uuid.uuid4(), name="Commercial", name_en="Commercial",
                                parameters={})
        db.add_all([other, _sample(client_id, lab_id, uuid.UUID(spec["id"]))])
        await db.commit()

        resp = await api.patch(self.url(client_id, spec["id"]), json={
            "template_id": str(other.id),
        })
        assert resp.status_code == 409
        assert resp.json()["error"]["details"] == {"sample_count": 1}

    async def test_delete_in_use_is_409(self, api, db, client_id, lab_id, template_id):
        spec = (await api.post(self.url(client_id), json={
            "template_id": str(template_id),
        })).json()["data"]
        db.add(_sample(client_id, lab_id, uuid.UUID(spec["id"])))
        await db.commit()

        resp = await api.delete(self.url(client_id, spec["id"]))
        assert resp.status_code == 409
        assert resp.json()["error"]["message"] == (
            "Cannot delete: specification is in use by 1 sample(s)"
        )

    async def test_delete_unused(self, api, client_id, template_id):
        spec = (await api.post(self.url(client_id), json={
            "template_id": str(template_id),
        })).json()["data"]
        resp = await api.delete(self.url(client_id, spec["id"]))
        assert resp.status_code == 200
        assert (await api.get(self.url(client_id, spec["id"]))).status_code == 404

    async def test_spec_of_other_client_is_404(self, api, db, client_id, template_id):
        spec = (await api.post(self.url(client_id), json={
            "template_id": str(template_id),
        })).json()["data"]
        other = Client(id=uuid.uuid4(), name="Other Roaster")
        db.add(other)
        await db.commit()
        resp = await api.get(self.url(other.id, spec["id"]))
        assert resp.status_code == 404


def _sample(client_id, lab_id, spec_id) -> Sample:
    return Sample(
        id=uuid.uuid4(),
        tracking_number=f"B-{uuid.uuid4().hex[:5]}",
        client_id=client_id,
        laboratory_id=lab_id,
        quality_spec_id=spec_id,
        origin="Brazil",
        supplier="Cooxupe",
    )
