"""External reasoning fallback: model-backed service and its response cache."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from datadna.core.config import ReasoningConfig
from datadna.core.exceptions import CacheError, ReasoningServiceError
from datadna.core.protocols import ICacheBackend, IModelProvider
from datadna.models.fingerprint import ColumnProfile
from datadna.models.mapping import ReasoningRequest, ReasoningResponse

logger = logging.getLogger(__name__)

CACHE_PREFIX = "reasoning:"

SYSTEM_PROMPT = """You are a healthcare data migration specialist familiar with FHIR R4, HL7 \
and clinical code systems (LOINC, SNOMED CT, ICD-10, CPT, RxNorm, NDC, NPI).

Given one source column and the destination tables, name the single best \
destination table and column for it.

RESPOND WITH JSON ONLY, NO MARKDOWN:
{"suggested_table": "...", "suggested_column": "...", "confidence": 0.0-1.0, \
"rationale": "...", "transformation": null}"""

_FENCE = re.compile(r"```(?:json)?\s*")


def name_shape(normalized_name: str) -> str:
    """Column-name shape: digit runs collapsed so col1/col2 share a key."""
    return re.sub(r"\d+", "#", normalized_name)


def build_prompt(request: ReasoningRequest) -> str:
    tables = "\n".join(
        f"- {table}: " + ", ".join(f"{col} ({kind})" for col, kind in cols.items())
        for table, cols in request.schema_summary.items()
    )
    samples = ", ".join(f'"{v}"' for v in request.sample_values)
    patterns = ", ".join(str(p) for p in request.patterns) or "none"
    return (
        "SOURCE COLUMN:\n"
        f"- Name: {request.column_name}\n"
        f"- Normalized name: {request.normalized_name}\n"
        f"- Detected patterns: {patterns}\n"
        f"- Sample values: {samples}\n\n"
        f"DESTINATION TABLES:\n{tables}\n\n"
        "Provide your mapping suggestion as JSON."
    )


def parse_reply(text: str, column: str) -> ReasoningResponse:
    """Parse a model reply, tolerating markdown fences around the JSON."""
    cleaned = _FENCE.sub("", text).strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ReasoningServiceError(column, f"reply is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ReasoningServiceError(column, "reply is not a JSON object")
    try:
        return ReasoningResponse.model_validate(payload)
    except ValidationError as exc:
        raise ReasoningServiceError(column, f"reply failed validation: {exc}") from exc


class ModelReasoningService:
    """IReasoningService backed by an IModelProvider chat call."""

    def __init__(self, model: IModelProvider, config: ReasoningConfig | None = None) -> None:
        self._model = model
        self._config = config or ReasoningConfig()

    async def suggest(self, request: ReasoningRequest) -> ReasoningResponse:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(request)},
        ]
        try:
            reply = await asyncio.to_thread(
                self._model.chat,
                messages,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
            )
        except Exception as exc:
            raise ReasoningServiceError(request.column_name, str(exc)) from exc
        return parse_reply(reply, request.column_name)


class ReasoningCache:
    """Clearable cache of reasoning answers keyed by request shape.

    Keys hash the primary pattern, the sorted secondary patterns, the
    column-name shape and the destination schema signature, so the same
    ambiguous column seen in another migration reuses the earlier answer.
    """

    def __init__(self, backend: ICacheBackend, ttl: int = 7 * 24 * 3600) -> None:
        self._backend = backend
        self._ttl = ttl

    @staticmethod
    def key_for(profile: ColumnProfile, schema_signature: str) -> str:
        shape = {
            "primary": str(profile.primary_pattern),
            "secondary": sorted(str(p) for p in profile.secondary_patterns),
            "name": name_shape(profile.normalized_name),
            "schema": schema_signature,
        }
        digest = hashlib.sha256(json.dumps(shape, sort_keys=True).encode()).hexdigest()
        return f"{CACHE_PREFIX}{digest[:32]}"

    def get(self, key: str) -> ReasoningResponse | None:
        raw = self._backend.get(key)
        if raw is None:
            return None
        try:
            return ReasoningResponse.model_validate_json(raw)
        except ValidationError:
            logger.warning("Dropping unreadable reasoning cache entry %s", key)
            self._backend.delete(key)
            return None

    def put(self, key: str, response: ReasoningResponse) -> None:
        self._backend.setex(key, self._ttl, response.model_dump_json())

    def clear(self) -> int:
        """Remove every cached answer; returns the number removed."""
        removed = 0
        for key in self._backend.keys(CACHE_PREFIX):
            self._backend.delete(key)
            removed += 1
        logger.info("Cleared %d reasoning cache entries", removed)
        return removed

    def entries(self) -> dict[str, ReasoningResponse]:
        out: dict[str, ReasoningResponse] = {}
        for key in self._backend.keys(CACHE_PREFIX):
            response = self.get(key)
            if response is not None:
                out[key] = response
        return out

    def safe_get(self, key: str) -> ReasoningResponse | None:
        """get() that treats a cache outage as a miss."""
        try:
            return self.get(key)
        except CacheError as exc:
            logger.warning("Reasoning cache read failed: %s", exc)
            return None

    def safe_put(self, key: str, response: ReasoningResponse) -> None:
        try:
            self.put(key, response)
        except CacheError as exc:
            logger.warning("Reasoning cache write failed: %s", exc)


def request_for(profile: ColumnProfile, schema_summary: dict[str, Any]) -> ReasoningRequest:
    return ReasoningRequest(
        column_name=profile.original_name,
        normalized_name=profile.normalized_name,
        sample_values=list(profile.sample_values),
        patterns=list(profile.patterns),
        schema_summary=schema_summary,
    )
