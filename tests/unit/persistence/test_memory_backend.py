"""Unit tests for the in-memory backends."""

from __future__ import annotations

import asyncio

from datadna.agents.fingerprint.dna_generator import DNAGenerator
from datadna.models.mapping import LearnedMapping
from datadna.models.patterns import PatternCategory as P
from tests.fakes import (
    MemoryCacheBackend,
    MemoryDestinationWriter,
    MemoryFingerprintCatalog,
    MemoryLearnedMappingStore,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _learned(**overrides) -> LearnedMapping:
    data = dict(
        org_id="org-a", source_pattern=P.NPI, normalized_name="prov_no",
        target_table="hc_staff", target_column="npi", version=1,
    )
    data.update(overrides)
    return LearnedMapping(**data)


class TestMemoryCache:
    def test_entries_expire(self):
        clock = FakeClock()
        cache = MemoryCacheBackend(clock=clock)
        cache.setex("k", 10, "v")
        clock.now += 9
        assert cache.get("k") == "v"
        clock.now += 1
        assert cache.get("k") is None
        assert cache.keys("k") == []

    def test_zero_ttl_never_expires(self):
        clock = FakeClock()
        cache = MemoryCacheBackend(clock=clock)
        cache.setex("k", 0, "v")
        clock.now += 10_000
        assert cache.get("k") == "v"

    def test_keys_and_delete(self):
        cache = MemoryCacheBackend()
        cache.setex("reasoning:a", 60, "1")
        cache.setex("reasoning:b", 60, "2")
        cache.setex("other", 60, "3")
        assert sorted(cache.keys("reasoning:")) == ["reasoning:a", "reasoning:b"]
        cache.delete("reasoning:a")
        cache.delete("missing")
        assert cache.keys("reasoning:") == ["reasoning:b"]


class TestMemoryLearnedMappingStore:
    def test_versioned_put(self):
        store = MemoryLearnedMappingStore()
        assert store.put(_learned(), expected_version=None) is True
        assert store.put(_learned(), expected_version=None) is False
        assert store.put(_learned(version=2), expected_version=5) is False
        assert store.put(_learned(version=2, confidence=0.7), expected_version=1) is True
        assert store.get("org-a", P.NPI, "prov_no", "hc_staff", "npi").confidence == 0.7

    def test_list_for_key_spans_targets(self):
        store = MemoryLearnedMappingStore()
        store.put(_learned(), None)
        store.put(_learned(target_table="hc_organization"), None)
        store.put(_learned(normalized_name="other"), None)
        assert len(store.list_for_key("org-a", P.NPI, "prov_no")) == 2
        assert store.list_for_key("org-b", P.NPI, "prov_no") == []
        assert len(store.list_for_org("org-a")) == 3

    def test_run_marker(self):
        store = MemoryLearnedMappingStore()
        assert store.run_learned("org-a", "r1") is False
        assert store.mark_run_learned("org-a", "r1") is True
        assert store.mark_run_learned("org-a", "r1") is False
        assert store.mark_run_learned("org-b", "r1") is True
        assert store.run_learned("org-a", "r1") is True
        assert store.run_learned("org-c", "r1") is False


class TestMemoryCatalogAndWriter:
    def test_catalog_is_per_org(self):
        catalog = MemoryFingerprintCatalog()
        fp = DNAGenerator().generate_dna("tabular-file", ["a"], [{"a": "x"}])
        catalog.save("org-a", fp)
        catalog.save("org-a", fp)
        assert [f.id for f in catalog.list("org-a")] == [fp.id]
        assert catalog.list("org-b") == []

    def test_writer_reject_hook(self):
        writer = MemoryDestinationWriter(reject=lambda table, record: "bad" if record["v"] == 2 else None)
        results = asyncio.run(writer.write_batch("t", [{"v": 1}, {"v": 2}]))
        assert [r.ok for r in results] == [True, False]
        assert results[1].error == "bad"
        assert writer.tables == {"t": [{"v": 1}]}
        assert writer.calls == 1
