"""In-memory backends for local runs and unit tests: dict-backed fakes."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

from datadna.models.fingerprint import SourceFingerprint
from datadna.models.mapping import LearnedMapping
from datadna.models.migration import WriteResult
from datadna.models.patterns import PatternCategory


class MemoryCacheBackend:
    """Dict-backed ICacheBackend.

    Writers swap in a fresh dict under a lock, so readers never see a
    partially applied update and never block.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _live(self, entry: tuple[str, float | None] | None) -> str | None:
        if entry is None:
            return None
        value, expires = entry
        if expires is not None and self._clock() >= expires:
            return None
        return value

    def get(self, key: str) -> str | None:
        return self._live(self._store.get(key))

    def setex(self, key: str, ttl: int, value: str) -> None:
        expires = self._clock() + ttl if ttl > 0 else None
        with self._lock:
            self._store = {**self._store, key: (value, expires)}

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._store:
                store = dict(self._store)
                store.pop(key)
                self._store = store

    def keys(self, prefix: str) -> list[str]:
        snapshot = self._store
        return [k for k, entry in snapshot.items() if k.startswith(prefix) and self._live(entry) is not None]


def _mapping_key(
    pattern: PatternCategory | str, name: str, table: str, column: str
) -> tuple[str, str, str, str]:
    return (str(pattern), name, table, column)


class MemoryLearnedMappingStore:
    """Dict-backed ILearnedMappingStore with versioned writes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._mappings: dict[str, dict[tuple[str, str, str, str], LearnedMapping]] = {}
        self._learned_runs: dict[str, set[str]] = {}

    def list_for_key(
        self, org_id: str, pattern: PatternCategory, normalized_name: str
    ) -> list[LearnedMapping]:
        org = self._mappings.get(org_id, {})
        return [
            m for (p, n, _, _), m in org.items()
            if p == str(pattern) and n == normalized_name
        ]

    def get(
        self, org_id: str, pattern: PatternCategory, normalized_name: str,
        target_table: str, target_column: str,
    ) -> LearnedMapping | None:
        key = _mapping_key(pattern, normalized_name, target_table, target_column)
        return self._mappings.get(org_id, {}).get(key)

    def put(self, mapping: LearnedMapping, expected_version: int | None) -> bool:
        key = _mapping_key(
            mapping.source_pattern, mapping.normalized_name,
            mapping.target_table, mapping.target_column,
        )
        with self._lock:
            org = self._mappings.setdefault(mapping.org_id, {})
            current = org.get(key)
            if expected_version is None and current is not None:
                return False
            if expected_version is not None and (current is None or current.version != expected_version):
                return False
            org[key] = mapping
            return True

    def list_for_org(self, org_id: str) -> list[LearnedMapping]:
        return list(self._mappings.get(org_id, {}).values())

    def run_learned(self, org_id: str, run_id: str) -> bool:
        return run_id in self._learned_runs.get(org_id, ())

    def mark_run_learned(self, org_id: str, run_id: str) -> bool:
        with self._lock:
            runs = self._learned_runs.setdefault(org_id, set())
            if run_id in runs:
                return False
            runs.add(run_id)
            return True


class MemoryFingerprintCatalog:
    """Dict-backed IFingerprintCatalog; saving an existing id replaces it."""

    def __init__(self) -> None:
        self._catalog: dict[str, dict[str, SourceFingerprint]] = {}

    def save(self, org_id: str, fingerprint: SourceFingerprint) -> None:
        self._catalog.setdefault(org_id, {})[fingerprint.id] = fingerprint

    def list(self, org_id: str) -> list[SourceFingerprint]:
        return list(self._catalog.get(org_id, {}).values())


class MemoryDestinationWriter:
    """IDestinationWriter that keeps written records per table.

    ``reject`` may return an error message for a record to simulate a
    destination-side failure.
    """

    def __init__(self, reject: Callable[[str, dict[str, Any]], str | None] | None = None) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls = 0
        self._reject = reject

    async def write_batch(self, table: str, records: list[dict[str, Any]]) -> list[WriteResult]:
        self.calls += 1
        results: list[WriteResult] = []
        for record in records:
            error = self._reject(table, record) if self._reject else None
            if error:
                results.append(WriteResult(ok=False, error=error))
                continue
            self.tables.setdefault(table, []).append(dict(record))
            results.append(WriteResult(ok=True))
        return results
