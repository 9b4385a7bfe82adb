"""
Tests for tracking-number allocation and lookup endpoints.

Tests cover:
- allocation through the database counter, distinct under concurrency
- input validation before the counter is touched
- lookup answers, client format checks, and store failures

Run with: pytest backend/tests/test_tracking_numbers.py -v
"""

import asyncio
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError

from qclab.models import Client, Laboratory, Sample


URL = "/api/v1/samples/tracking-numbers"


def _year():
    return datetime.now(timezone.utc).year


class TestAllocate:

    async def test_uses_client_format(self, api, client_id, lab_id, procedures):
        procedures.counters[(client_id, lab_id, _year())] = 12
        resp = await api.post(URL, json={"client_id": str(client_id), "laboratory_id": str(lab_id)})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["tracking_number"] == "B-00013-25"
        assert data["client"] == "Dunkin Brands"
        assert data["format_used"] == "B-{seq:05d}-25"

    async def test_consecutive_allocations_are_distinct(self, api, client_id, lab_id):
        body = {"client_id": str(client_id), "laboratory_id": str(lab_id)}
        first = (await api.post(URL, json=body)).json()["data"]["tracking_number"]
        second = (await api.post(URL, json=body)).json()["data"]["tracking_number"]
        assert first != second

    async def test_missing_ids_is_400(self, api, client_id, procedures):
        resp = await api.post(URL, json={"client_id": str(client_id)})
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Missing required fields: client_id, laboratory_id"
        assert procedures.calls == []

    async def test_store_failure_is_500_with_store_message(self, api, client_id, lab_id, procedures):
        procedures.fail.add("generate_tracking_number")
        resp = await api.post(URL, json={"client_id": str(client_id), "laboratory_id": str(lab_id)})
        assert resp.status_code == 500
        error = resp.json()["error"]
        assert error["message"] == "Failed to call generate_tracking_number"
        assert error["details"]["message"] == "generate_tracking_number exploded"

    async def test_concurrent_allocations_are_distinct(self, db, client_id, lab_id, procedures):
        # Keep both rows in the identity map so allocations do no I/O of their own
        client = await db.get(Client, client_id)
        lab = await db.get(Laboratory, lab_id)
        assert client is not None and lab is not None

        numbers = await asyncio.gather(*(
            procedures.generate_tracking_number(client_id, lab_id) for _ in range(25)
        ))
        assert len(set(numbers)) == 25
        assert sorted(numbers) == [f"B-{seq:05d}-25" for seq in range(1, 26)]
        assert procedures.counters[(client_id, lab_id, _year())] == 25


class TestLookup:

    async def test_missing_parameter_is_400(self, api):
        resp = await api.get(URL)
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Missing tracking_number parameter"

    async def test_unknown_number(self, api):
        resp = await api.get(URL, params={"tracking_number": "NOPE-1"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data == {"valid": False, "exists": False, "tracking_number": "NOPE-1"}

    async def test_existing_number(self, api, db, client_id, lab_id):
        sample = Sample(
            id=uuid.uuid4(),
            tracking_number="B-00001-25",
            client_id=client_id,
            laboratory_id=lab_id,
            origin="Brazil",
            supplier="Cooxupe",
        )
        db.add(sample)
        await db.commit()

        resp = await api.get(URL, params={"tracking_number": "B-00001-25", "client_id": str(client_id)})
        data = resp.json()["data"]
        assert data["exists"] is True
        assert data["valid"] is True
        assert data["sample_id"] == str(sample.id)
        assert data["format_valid"] is True

    async def test_format_mismatch_for_client(self, api, client_id):
        resp = await api.get(URL, params={"tracking_number": "X-1", "client_id": str(client_id)})
        assert resp.json()["data"]["format_valid"] is False

    async def test_unrecognised_client_format_is_not_an_error(self, api, db, client_id):
        client = await db.get(Client, client_id)
        client.tracking_number_format = "DNK-{client}-{seq:05d}"
        await db.commit()

        resp = await api.get(URL, params={"tracking_number": "X-1", "client_id": str(client_id)})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["exists"] is False
        assert data["format_valid"] is False

    async def test_store_failure_is_500_not_a_miss(self, api, db, monkeypatch):
        async def _broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(db, "execute", _broken)
        resp = await api.get(URL, params={"tracking_number": "B-00001-25"})
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["message"] == "Failed to look up tracking number"
        assert body["error"]["details"]["message"] == "connection lost"
        assert "data" not in body
