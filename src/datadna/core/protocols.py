"""Protocol interfaces for all DataDNA abstractions.

Components talk to collaborators only through these Protocols: structural
typing, no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

from datadna.models.fingerprint import SourceFingerprint
from datadna.models.mapping import LearnedMapping, ReasoningRequest, ReasoningResponse
from datadna.models.migration import WriteResult
from datadna.models.patterns import PatternCategory

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Model Provider
# ---------------------------------------------------------------------------

@runtime_checkable
class IModelProvider(Protocol):
    """Abstraction over LLM providers (mock, Bedrock)."""

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str: ...

    def structured_output(
        self, messages: list[dict[str, str]], response_model: type[T], **kwargs: Any
    ) -> T: ...


# ---------------------------------------------------------------------------
# External Reasoning
# ---------------------------------------------------------------------------

@runtime_checkable
class IReasoningService(Protocol):
    """Advisory target suggestion for a low-confidence column."""

    async def suggest(self, request: ReasoningRequest) -> ReasoningResponse: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self, prefix: str) -> list[str]: ...


# ---------------------------------------------------------------------------
# Persistence: Learned Mappings
# ---------------------------------------------------------------------------

@runtime_checkable
class ILearnedMappingStore(Protocol):
    """Per-organization learned-mapping records with versioned writes.

    ``put`` succeeds only when the stored version equals ``expected_version``
    (``None`` meaning the record must not exist yet) and returns False on a
    version conflict. ``mark_run_learned`` creates a run marker once and
    returns False when it already exists.
    """

    def list_for_key(
        self, org_id: str, pattern: PatternCategory, normalized_name: str
    ) -> list[LearnedMapping]: ...

    def get(
        self, org_id: str, pattern: PatternCategory, normalized_name: str,
        target_table: str, target_column: str,
    ) -> LearnedMapping | None: ...

    def put(self, mapping: LearnedMapping, expected_version: int | None) -> bool: ...

    def list_for_org(self, org_id: str) -> list[LearnedMapping]: ...

    def run_learned(self, org_id: str, run_id: str) -> bool: ...

    def mark_run_learned(self, org_id: str, run_id: str) -> bool: ...


# ---------------------------------------------------------------------------
# Persistence: Fingerprint Catalog
# ---------------------------------------------------------------------------

@runtime_checkable
class IFingerprintCatalog(Protocol):
    """Previously analyzed fingerprints for an organization."""

    def save(self, org_id: str, fingerprint: SourceFingerprint) -> None: ...

    def list(self, org_id: str) -> list[SourceFingerprint]: ...


# ---------------------------------------------------------------------------
# Destination Write
# ---------------------------------------------------------------------------

@runtime_checkable
class IDestinationWriter(Protocol):
    """Batched insert/upsert into a destination table.

    Returns one WriteResult per record, in input order.
    """

    async def write_batch(
        self, table: str, records: list[dict[str, Any]]
    ) -> list[WriteResult]: ...
