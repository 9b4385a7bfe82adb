"""
Tests for quality templates.

Tests cover:
- listing with usage counts and multilingual search
- cloning with suffixed names and a parent reference
- parameter document validation
- create defaults, versioned updates and in-use delete guard

Run with: pytest backend/tests/test_quality_templates.py -v
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from qclab.models import ClientQuality, QualityTemplate, TemplateVersion
from qclab.models.enums import QCRole
from qclab.services.quality_template import validate_template_parameters

from conftest import make_ctx

URL = "/api/v1/quality-templates"


@pytest.fixture
async def template_id(db, client_id):
    template = QualityTemplate(
        id=uuid.uuid4(),
        name="Brazil Santos",
        name_en="Brazil Santos",
        name_pt="Santos Brasil",
        description_en="Screen 17/18 fine cup",
        moisture_standard={"max": 12.5},
        max_taints_allowed=0,
        version=3,
        parameters={"screen": 17},
    )
    db.add(template)
    db.add(ClientQuality(id=uuid.uuid4(), client_id=client_id, template_id=template.id))
    await db.commit()
    return template.id


class TestListing:

    async def test_usage_count(self, api, template_id):
        data = (await api.get(f"{URL}/{template_id}")).json()["data"]
        assert data["usage_count"] == 1
        assert data["created_by_name"] == "Unknown"

    async def test_search_across_languages(self, api, template_id):
        body = (await api.get(URL, params={"search": "brasil"})).json()
        assert body["meta"]["total"] == 1
        assert (await api.get(URL, params={"search": "kenya"})).json()["meta"]["total"] == 0


class TestClone:

    async def test_clone_copies_and_suffixes(self, api, db, template_id):
        resp = await api.post(f"{URL}/{template_id}/clone", json={})
        assert resp.status_code == 201
        clone = resp.json()["data"]
        assert clone["name_en"] == "Brazil Santos (Copy)"
        assert clone["name_pt"] == "Santos Brasil (Cópia)"
        assert clone["name_es"] is None
        assert clone["version"] == 1
        assert clone["template_parent_id"] == str(template_id)
        assert clone["moisture_standard"] == {"max": 12.5}
        assert clone["parameters"] == {"screen": 17}

        version = (await db.execute(
            select(TemplateVersion).where(TemplateVersion.template_id == uuid.UUID(clone["id"]))
        )).scalar_one()
        assert version.changes_description == "Cloned from template: Brazil Santos"

    async def test_clone_overrides_name(self, api, template_id):
        resp = await api.post(f"{URL}/{template_id}/clone", json={"name_en": "Santos Export"})
        assert resp.json()["data"]["name_en"] == "Santos Export"

    async def test_clone_unknown_is_404(self, api):
        resp = await api.post(f"{URL}/{uuid.uuid4()}/clone", json={})
        assert resp.status_code == 404


# =============================================================================
# Authoring
# =============================================================================

class TestParameterValidation:

    @pytest.mark.parametrize("parameters, message", [
        ({"screen_sizes": {"type": "range", "min": 14}},
         "Range screen sizes must have min and max values"),
        ({"screen_sizes": {"type": "specific", "sizes": "17,18"}},
         "Specific screen sizes must be an array"),
        ({"defects": {"primary_max": "5"}}, "defects.primary_max must be a number"),
        ({"moisture_max": 120}, "moisture_max must be a number between 0 and 100"),
        ({"moisture_max": True}, "moisture_max must be a number between 0 and 100"),
        ({"cupping": {"scale_type": "0-100"}}, "cupping.scale_type must be one of: 1-5, 1-7, 1-10"),
        ({"cupping": {"min_score": "80"}}, "cupping.min_score must be a number"),
        ({"cupping": {"attributes": "acidity"}}, "cupping.attributes must be an array"),
    ])
    def test_rejects(self, parameters, message):
        assert validate_template_parameters(parameters) == message

    def test_accepts_complete_document(self):
        parameters = {
            "screen_sizes": {"type": "specific", "sizes": [17, 18]},
            "defects": {"primary_max": 0, "secondary_max": 5},
            "moisture_max": 12.5,
            "cupping": {"scale_type": "1-10", "min_score": 80, "attributes": ["acidity"]},
        }
        assert validate_template_parameters(parameters) is None


class TestCreate:

    async def test_create_applies_defaults(self, api, db):
        resp = await api.post(URL, json={"name_en": "Colombia Excelso"})
        assert resp.status_code == 201
        template = resp.json()["data"]
        assert template["name"] == "Colombia Excelso"
        assert template["name_pt"] == "Colombia Excelso"
        assert template["sample_size_grams"] == 300
        assert template["cupping_scale_type"] == "1-10"
        assert Decimal(template["cupping_scale_increment"]) == Decimal("0.25")
        assert template["taint_fault_rule_type"] == "AND"
        assert template["version"] == 1

        version = (await db.execute(
            select(TemplateVersion).where(TemplateVersion.template_id == uuid.UUID(template["id"]))
        )).scalar_one()
        assert version.changes_description == "Initial version"

    async def test_missing_name_is_400(self, api):
        resp = await api.post(URL, json={"name_pt": "Sem nome"})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Missing required field: name_en"

    async def test_inverted_cupping_range_is_400(self, api):
        resp = await api.post(URL, json={
            "name_en": "Odd", "cupping_scale_min": "8", "cupping_scale_max": "5",
        })
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == (
            "cupping_scale_min must be less than cupping_scale_max"
        )

    async def test_invalid_parameters_are_400(self, api):
        resp = await api.post(URL, json={"name_en": "Wet", "parameters": {"moisture_max": -1}})
        assert resp.status_code == 400

    async def test_assistant_cannot_create(self, api, auth, lab_id):
        auth["ctx"] = make_ctx(QCRole.LAB_ASSISTANT, laboratory_id=lab_id)
        resp = await api.post(URL, json={"name_en": "Colombia Excelso"})
        assert resp.status_code == 403


class TestUpdate:

    async def test_parameter_change_bumps_version(self, api, db, template_id):
        resp = await api.patch(f"{URL}/{template_id}", json={
            "parameters": {"screen": 18},
            "changes_description": "Raise screen size",
        })
        assert resp.status_code == 200
        assert resp.json()["data"]["version"] == 4

        version = (await db.execute(
            select(TemplateVersion).where(TemplateVersion.template_id == template_id)
        )).scalar_one()
        assert version.version_number == 4
        assert version.changes_description == "Raise screen size"

    async def test_same_parameters_keep_version(self, api, template_id):
        resp = await api.patch(f"{URL}/{template_id}", json={"parameters": {"screen": 17}})
        assert resp.json()["data"]["version"] == 3

    async def test_rename_keeps_legacy_name_in_sync(self, api, template_id):
        resp = await api.patch(f"{URL}/{template_id}", json={"name_en": "Santos Fine Cup"})
        data = resp.json()["data"]
        assert data["name_en"] == "Santos Fine Cup"
        assert data["name"] == "Santos Fine Cup"

    async def test_cupping_range_checked_against_stored_values(self, api, template_id):
        await api.patch(f"{URL}/{template_id}", json={
            "cupping_scale_min": "1", "cupping_scale_max": "10",
        })
        resp = await api.patch(f"{URL}/{template_id}", json={"cupping_scale_min": "10"})
        assert resp.status_code == 400

    async def test_null_name_is_400(self, api, template_id):
        resp = await api.patch(f"{URL}/{template_id}", json={"name_en": None})
        assert resp.status_code == 400
        assert resp.json()["error"]["details"] == {"field": "name_en"}

    async def test_unknown_template_is_404(self, api):
        resp = await api.patch(f"{URL}/{uuid.uuid4()}", json={"is_active": False})
        assert resp.status_code == 404


class TestDelete:

    async def test_in_use_is_409(self, api, template_id):
        resp = await api.delete(f"{URL}/{template_id}")
        assert resp.status_code == 409
        assert resp.json()["error"]["details"] == {"usage_count": 1}

    async def test_delete_detaches_clones(self, api, db):
        source = (await api.post(URL, json={"name_en": "Guatemala SHB"})).json()["data"]
        clone = (await api.post(f"{URL}/{source['id']}/clone", json={})).json()["data"]

        resp = await api.delete(f"{URL}/{source['id']}")
        assert resp.status_code == 200

        remaining = (await api.get(f"{URL}/{clone['id']}")).json()["data"]
        assert remaining["template_parent_id"] is None
        versions = (await db.execute(
            select(TemplateVersion).where(TemplateVersion.template_id == uuid.UUID(source["id"]))
        )).scalars().all()
        assert versions == []
        assert (await api.get(f"{URL}/{source['id']}")).status_code == 404
