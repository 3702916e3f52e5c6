"""Shared test doubles: re-export memory backends plus reasoning fakes."""

from __future__ import annotations

import asyncio

from datadna.core.exceptions import ReasoningServiceError
from datadna.models.mapping import ReasoningRequest, ReasoningResponse
from datadna.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryDestinationWriter,
    MemoryFingerprintCatalog,
    MemoryLearnedMappingStore,
)


class ScriptedReasoningService:
    """IReasoningService returning one fixed answer and counting calls."""

    def __init__(
        self,
        response: ReasoningResponse | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.response = response
        self.delay = delay
        self.error = error
        self.requests: list[ReasoningRequest] = []

    async def suggest(self, request: ReasoningRequest) -> ReasoningResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.response is None:
            raise ReasoningServiceError(request.column_name, "no scripted answer")
        return self.response


class ConflictingLearnedMappingStore(MemoryLearnedMappingStore):
    """Loses the first ``conflicts`` versioned writes, as a concurrent writer would."""

    def __init__(self, conflicts: int) -> None:
        super().__init__()
        self.conflicts = conflicts
        self.put_attempts = 0

    def put(self, mapping, expected_version):
        self.put_attempts += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            return False
        return super().put(mapping, expected_version)


__all__ = [
    "ConflictingLearnedMappingStore",
    "MemoryCacheBackend",
    "MemoryDestinationWriter",
    "MemoryFingerprintCatalog",
    "MemoryLearnedMappingStore",
    "ScriptedReasoningService",
]
