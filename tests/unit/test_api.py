"""Tests for the FastAPI app using the in-memory backends."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from datadna.api.app import create_app
from datadna.core.config import AppSettings
from datadna.core.exceptions import CacheError
from datadna.models.mapping import LearnedMapping
from datadna.models.patterns import PatternCategory as P

STAFF_ROWS = [
    {"first_name": "John", "email": "john@x.com", "npi": "1234567893"},
    {"first_name": "Jane", "email": "jane@x.com", "npi": "9876543213"},
]


class BrokenCache:
    def get(self, key):
        raise CacheError("connection refused")


@pytest.fixture
def client():
    app = create_app(AppSettings(backend="memory"))
    with TestClient(app) as c:
        yield c


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready", "backend": "memory"}

    def test_ready_fails_when_cache_down(self, client):
        client.app.state.cache = BrokenCache()
        resp = client.get("/ready")
        assert resp.status_code == 503


class TestAnalyze:
    def test_analyze_rows(self, client):
        resp = client.post("/migrations/analyze", json={"org_id": "org-a", "rows": STAFF_ROWS})
        assert resp.status_code == 200
        body = resp.json()
        assert body["fingerprint"]["column_count"] == 3
        targets = {s["source_column"]: s["primary"]["target_column"] for s in body["suggestions"]}
        assert targets == {"first_name": "first_name", "email": "email", "npi": "npi"}
        assert body["columns_requiring_review"] == []

    def test_empty_rows_rejected(self, client):
        resp = client.post("/migrations/analyze", json={"org_id": "org-a", "rows": []})
        assert resp.status_code == 422

    def test_org_required(self, client):
        resp = client.post("/migrations/analyze", json={"org_id": "", "rows": STAFF_ROWS})
        assert resp.status_code == 422

    def test_learned_history_is_used(self, client):
        client.app.state.learning.store.put(LearnedMapping(
            org_id="org-a", source_pattern=P.NPI, normalized_name="prov_no",
            target_table="hc_organization", target_column="npi",
            confidence=0.9, times_used=10, times_succeeded=10, version=1,
        ), expected_version=None)
        rows = [{"prov_no": "1234567893"}, {"prov_no": "9876543213"}]
        resp = client.post("/migrations/analyze", json={"org_id": "org-a", "rows": rows})
        primary = resp.json()["suggestions"][0]["primary"]
        assert (primary["target_table"], primary["origin"]) == ("hc_organization", "learned")


class TestAdmin:
    def test_learned_mappings_sorted(self, client):
        store = client.app.state.learning.store
        for column, confidence in (("npi", 0.6), ("employee_id", 0.9)):
            store.put(LearnedMapping(
                org_id="org-a", source_pattern=P.NPI, normalized_name="prov_no",
                target_table="hc_staff", target_column=column, confidence=confidence, version=1,
            ), expected_version=None)
        body = client.get("/admin/learned-mappings/org-a").json()
        assert body["org_id"] == "org-a"
        assert [m["target_column"] for m in body["mappings"]] == ["employee_id", "npi"]

    def test_unknown_org_is_empty(self, client):
        assert client.get("/admin/learned-mappings/nobody").json()["mappings"] == []

    def test_clear_reasoning_cache(self, client):
        cache = client.app.state.cache
        cache.setex("reasoning:a", 60, "{}")
        cache.setex("reasoning:b", 60, "{}")
        cache.setex("datadna:other", 60, "x")
        assert client.delete("/admin/reasoning-cache").json() == {"removed": 2}
        assert cache.get("datadna:other") == "x"
