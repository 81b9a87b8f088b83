"""
Tests for firestore_api.py - Firestore REST document store (mocked HTTP).

These tests verify:
- Typed value encoding/decoding
- Query, paging and insert calls
- Promotion as one preconditioned commit, retried when contended
- Precondition-guarded deletes and error mapping
"""

import pytest
import requests
from unittest.mock import Mock

from ft.adapters.firestore_api import FirestoreStore, to_value, from_value, encode_fields, decode_fields
from ft.core.errors import StoreError
from ft.core.models import Status

from conftest import make_sighting

BASE = "https://firestore.googleapis.com/v1/projects/trucks/databases/(default)/documents"
ROOT = "projects/trucks/databases/(default)/documents"


def resp(status=200, body=None):
    r = Mock()
    r.status_code = status
    r.json.return_value = body if body is not None else {}
    return r


def raw_doc(doc_id, status="pending", update_time="2026-10-18T12:00:00.000000Z", **fields):
    doc = {"foodTruckName": "Taco Loco", "status": status, "reporterId": doc_id}
    doc.update(fields)
    return {"name": f"{ROOT}/sightings/{doc_id}", "fields": encode_fields(doc), "updateTime": update_time}


def make_store(*responses):
    session = Mock()
    session.request.side_effect = list(responses)
    cfg = {"firestore_project": "trucks", "access_token": "tok", "user_agent": "TestAgent"}
    return FirestoreStore(cfg, session=session), session


class TestValueCodec:
    """Firestore typed values."""

    def test_scalars(self):
        assert to_value(None) == {"nullValue": None}
        assert to_value(True) == {"booleanValue": True}
        assert to_value(3) == {"integerValue": "3"}
        assert to_value(1.5) == {"doubleValue": 1.5}
        assert to_value("x") == {"stringValue": "x"}

    def test_nested_sighting_document(self):
        doc = make_sighting(favorite_items=["Al pastor", "Horchata"]).to_doc()
        assert decode_fields(encode_fields(doc)) == doc

    def test_integer_values_decode_to_int(self):
        assert from_value({"integerValue": "52"}) == 52

    def test_geo_point(self):
        assert from_value({"geoPointValue": {"latitude": 1.0, "longitude": 2.0}}) == {"latitude": 1.0, "longitude": 2.0}


class TestReads:
    """Queries and listing."""

    def test_find_by_name_runs_equal_query(self):
        store, session = make_store(resp(200, [{"document": raw_doc("a")}, {"readTime": "x"}]))

        found = store.find_by_name("Taco Loco")

        assert [s.id for s in found] == ["a"]
        assert found[0].revision == "2026-10-18T12:00:00.000000Z"
        method, url = session.request.call_args[0]
        assert (method, url) == ("POST", f"{BASE}:runQuery")
        where = session.request.call_args[1]["json"]["structuredQuery"]["where"]["fieldFilter"]
        assert where["op"] == "EQUAL"
        assert where["value"] == {"stringValue": "Taco Loco"}
        assert session.request.call_args[1]["headers"]["Authorization"] == "Bearer tok"

    def test_all_sightings_follows_pages(self):
        store, session = make_store(
            resp(200, {"documents": [raw_doc("a")], "nextPageToken": "p2"}),
            resp(200, {"documents": [raw_doc("b")]}),
        )

        assert [s.id for s in store.all_sightings()] == ["a", "b"]
        assert session.request.call_args_list[1][1]["params"]["pageToken"] == "p2"

    def test_raw_sightings_are_not_normalized(self):
        """Unknown status and text coordinates come back exactly as stored."""
        doc = raw_doc("a", status="approved", location={"latitude": "52.5", "longitude": 13.4})
        store, _ = make_store(resp(200, {"documents": [doc]}))

        raw = store.raw_sightings()

        assert raw["a"]["status"] == "approved"
        assert raw["a"]["location"] == {"latitude": "52.5", "longitude": 13.4}

    def test_missing_document_is_none(self):
        store, _ = make_store(resp(404))
        assert store.get_sighting("gone") is None

    def test_read_flag(self):
        store, _ = make_store(resp(200, {"name": "x", "fields": encode_fields({"mode": "blocking", "method": "photo"})}))
        assert store.read_flag() == {"mode": "blocking", "method": "photo"}

    def test_network_error_is_store_error(self):
        store, _ = make_store(requests.ConnectionError("offline"))
        with pytest.raises(StoreError):
            store.find_by_name("Taco Loco")

    def test_server_error_is_store_error(self):
        store, _ = make_store(resp(503, {"error": {"status": "UNAVAILABLE"}}))
        with pytest.raises(StoreError):
            store.all_sightings()


class TestWrites:
    """Insert, promotion and delete."""

    def test_add_sighting_returns_generated_id(self):
        store, session = make_store(resp(200, {"name": f"{ROOT}/sightings/new123"}))

        sid = store.add_sighting(make_sighting())

        assert sid == "new123"
        body = session.request.call_args[1]["json"]
        assert body["fields"]["status"] == {"stringValue": "pending"}

    def test_promote_commits_pending_with_preconditions(self):
        """Verified and missing ids are left out of the single commit."""
        store, session = make_store(
            resp(200, raw_doc("a")),
            resp(200, raw_doc("b", status="verified")),
            resp(404),
            resp(200, {"writeResults": [{}]}),
        )

        changed = store.promote(["a", "b", "c"], "2026-10-18T12:30:00.000Z")

        assert changed == ["a"]
        method, url = session.request.call_args[0]
        assert (method, url) == ("POST", f"{BASE}:commit")
        writes = session.request.call_args[1]["json"]["writes"]
        assert len(writes) == 1
        assert writes[0]["currentDocument"] == {"updateTime": "2026-10-18T12:00:00.000000Z"}
        assert writes[0]["updateMask"] == {"fieldPaths": ["status", "verifiedAt"]}
        assert writes[0]["update"]["fields"]["status"] == {"stringValue": Status.VERIFIED.value}

    def test_promote_retries_contended_commit(self):
        """A precondition failure re-reads and commits again."""
        store, session = make_store(
            resp(200, raw_doc("a")),
            resp(400, {"error": {"status": "FAILED_PRECONDITION"}}),
            resp(200, raw_doc("a", update_time="2026-10-18T12:00:05.000000Z")),
            resp(200, {"writeResults": [{}]}),
        )

        assert store.promote(["a"], "2026-10-18T12:30:00.000Z") == ["a"]
        writes = session.request.call_args[1]["json"]["writes"]
        assert writes[0]["currentDocument"] == {"updateTime": "2026-10-18T12:00:05.000000Z"}

    def test_promote_nothing_pending_skips_commit(self):
        store, session = make_store(resp(200, raw_doc("a", status="verified")))
        assert store.promote(["a"], "2026-10-18T12:30:00.000Z") == []
        assert session.request.call_count == 1

    def test_promote_hard_failure_raises(self):
        store, _ = make_store(resp(200, raw_doc("a")), resp(403, {"error": {"status": "PERMISSION_DENIED"}}))
        with pytest.raises(StoreError):
            store.promote(["a"], "2026-10-18T12:30:00.000Z")

    def test_delete_uses_read_revision(self):
        store, session = make_store(resp(200))
        expected = make_sighting(id="a", revision="2026-10-18T12:00:00.000000Z")

        assert store.delete_sighting("a", expected=expected) is True
        assert session.request.call_args[1]["params"] == {"currentDocument.updateTime": "2026-10-18T12:00:00.000000Z"}

    def test_delete_changed_document_returns_false(self):
        store, _ = make_store(resp(400, {"error": {"status": "FAILED_PRECONDITION"}}))
        assert store.delete_sighting("a", expected=make_sighting(id="a", revision="old")) is False

    def test_vendor_key_with_email_is_quoted(self):
        store, session = make_store(resp(404))
        assert store.get_vendor("a b@example.com") is None
        assert session.request.call_args[0][1] == f"{BASE}/vendors/a%20b@example.com"
