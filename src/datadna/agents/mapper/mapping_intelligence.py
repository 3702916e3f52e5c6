"""MappingIntelligence: ranked, confidence-scored target suggestions per source column.

Each (source column, target column) pair is scored as a weighted sum of
pattern compatibility, name similarity, synonym membership and substring
containment. Learned mappings for the organization are merged in, and
columns still below the reasoning threshold are sent to the external
reasoning service, concurrently and with a per-call timeout.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from rapidfuzz import fuzz

from datadna.agents.base import BaseAgent
from datadna.agents.learning.learning_store import LearningStore
from datadna.agents.mapper.reasoning import ReasoningCache, request_for
from datadna.agents.mapper.synonyms import compact, synonyms_for
from datadna.agents.mapper.transforms import infer_transform, parse_transform_name
from datadna.core.config import AppSettings
from datadna.core.exceptions import ReasoningServiceError
from datadna.core.protocols import IReasoningService
from datadna.models.fingerprint import ColumnProfile, SourceFingerprint
from datadna.models.mapping import (
    CandidateOrigin,
    LearnedMapping,
    MappingCandidate,
    MappingSuggestion,
    ReasoningResponse,
    ReasoningStatus,
    ScoreSignal,
)
from datadna.models.schema import DestinationSchema, TargetColumn, TargetTable

logger = logging.getLogger(__name__)


def name_similarity(a: str, b: str) -> float:
    """Edit-distance ratio of the two names with separators removed."""
    return fuzz.ratio(compact(a), compact(b)) / 100


def contains(a: str, b: str) -> bool:
    ca, cb = compact(a), compact(b)
    return bool(ca) and bool(cb) and (ca in cb or cb in ca)


class MappingIntelligence(BaseAgent):
    """Suggests destination columns for every column of a fingerprint."""

    def __init__(
        self,
        *,
        settings: AppSettings | None = None,
        schema: DestinationSchema,
        learning_store: LearningStore | None = None,
        reasoning: IReasoningService | None = None,
        reasoning_cache: ReasoningCache | None = None,
    ) -> None:
        super().__init__(settings=settings)
        self._schema = schema
        self._learning = learning_store
        self._reasoning = reasoning
        self._cache = reasoning_cache
        self._scoring = self._settings.scoring
        self._rcfg = self._settings.reasoning
        self._schema_signature = schema.signature()
        self._synonyms = {
            (t.name, c.name): synonyms_for(c) for t, c in schema.iter_columns()
        }

    @property
    def schema(self) -> DestinationSchema:
        return self._schema

    @property
    def reasoning_cache(self) -> ReasoningCache | None:
        return self._cache

    @property
    def reasoning_enabled(self) -> bool:
        return self._rcfg.enabled and self._reasoning is not None

    # ---- scoring ----

    def score_pair(
        self, profile: ColumnProfile, table: TargetTable, column: TargetColumn
    ) -> MappingCandidate:
        cfg = self._scoring
        signals: list[ScoreSignal] = []

        accepted = column.accepted_patterns
        if profile.primary_pattern in accepted:
            signals.append(ScoreSignal(
                name="pattern", weight=cfg.pattern_weight, score=1.0,
                contribution=cfg.pattern_weight,
                detail=f"{profile.primary_pattern} fits {column.semantic_type}",
            ))
        else:
            partial = next((p for p in profile.secondary_patterns if p in accepted), None)
            if partial is not None:
                credit = cfg.secondary_pattern_credit
                signals.append(ScoreSignal(
                    name="pattern", weight=cfg.pattern_weight, score=credit,
                    contribution=cfg.pattern_weight * credit,
                    detail=f"secondary {partial} fits {column.semantic_type}",
                ))

        similarity = name_similarity(profile.normalized_name, column.name)
        if similarity >= cfg.name_similarity_floor:
            signals.append(ScoreSignal(
                name="name", weight=cfg.name_weight, score=similarity,
                contribution=cfg.name_weight * similarity,
                detail=f"{profile.normalized_name!r} ~ {column.name!r}",
            ))

        if compact(profile.normalized_name) in self._synonyms[(table.name, column.name)]:
            signals.append(ScoreSignal(
                name="synonym", weight=cfg.synonym_weight, score=1.0,
                contribution=cfg.synonym_weight,
                detail=f"{profile.normalized_name!r} is a synonym of {column.name!r}",
            ))

        if contains(profile.normalized_name, column.name):
            signals.append(ScoreSignal(
                name="containment", weight=cfg.containment_weight, score=1.0,
                contribution=cfg.containment_weight,
                detail="one name contains the other",
            ))

        confidence = min(1.0, sum(s.contribution for s in signals))
        return MappingCandidate(
            target_table=table.name,
            target_column=column.name,
            confidence=confidence,
            rationale=signals,
            transform=infer_transform(profile, column),
        )

    def score_column(self, profile: ColumnProfile) -> list[MappingCandidate]:
        """All candidates at or above the floor, best first."""
        floor = self._scoring.candidate_floor
        candidates = [
            cand
            for table, column in self._schema.iter_columns()
            if (cand := self.score_pair(profile, table, column)).confidence >= floor
        ]
        return _ranked(candidates)

    def learned_score(self, learned: LearnedMapping) -> float:
        cfg = self._scoring
        bonus = min(cfg.learned_max_bonus, cfg.learned_max_bonus * learned.success_rate * learned.confidence)
        return min(1.0, cfg.learned_base + bonus)

    def apply_learned(
        self, profile: ColumnProfile, candidates: list[MappingCandidate], learned: LearnedMapping
    ) -> list[MappingCandidate]:
        target = self._schema.find_column(learned.target_table, learned.target_column)
        if target is None:
            logger.debug("Ignoring learned mapping to unknown target %s.%s",
                         learned.target_table, learned.target_column)
            return candidates
        score = self.learned_score(learned)
        signal = ScoreSignal(
            name="learned", weight=1.0, score=score, contribution=score,
            detail=(
                f"used {learned.times_used}x, succeeded {learned.times_succeeded}x, "
                f"stored confidence {learned.confidence:.2f}"
            ),
        )
        merged: list[MappingCandidate] = []
        found = False
        for cand in candidates:
            if cand.target == (learned.target_table, learned.target_column):
                found = True
                better = score > cand.confidence
                cand = cand.model_copy(update={
                    "confidence": max(cand.confidence, score),
                    "rationale": [*cand.rationale, signal],
                    "origin": CandidateOrigin.LEARNED if better else cand.origin,
                })
            merged.append(cand)
        if not found and score >= self._scoring.candidate_floor:
            merged.append(MappingCandidate(
                target_table=learned.target_table,
                target_column=learned.target_column,
                confidence=score,
                rationale=[signal],
                origin=CandidateOrigin.LEARNED,
                transform=infer_transform(profile, target),
            ))
        return _ranked(merged)

    def local_candidates(self, profile: ColumnProfile, org_id: str | None) -> list[MappingCandidate]:
        candidates = self.score_column(profile)
        if self._learning is not None and org_id:
            learned = self._learning.suggest_from_history(
                profile.primary_pattern, profile.normalized_name, org_id
            )
            if learned is not None:
                candidates = self.apply_learned(profile, candidates, learned)
        return candidates

    # ---- suggestion pass ----

    def _suggestion(
        self,
        profile: ColumnProfile,
        candidates: list[MappingCandidate],
        status: ReasoningStatus,
    ) -> MappingSuggestion:
        primary = candidates[0] if candidates else None
        threshold = self._rcfg.confidence_threshold
        review = (
            primary is None
            or primary.confidence < threshold
            or status in (ReasoningStatus.DISABLED, ReasoningStatus.FAILED)
        )
        return MappingSuggestion(
            source_column=profile.original_name,
            normalized_name=profile.normalized_name,
            primary_pattern=profile.primary_pattern,
            primary=primary,
            alternatives=candidates[1 : 1 + self._scoring.max_alternatives],
            requires_manual_review=review,
            reasoning_status=status,
        )

    def _resolve_target(self, response: ReasoningResponse) -> tuple[TargetTable, TargetColumn] | None:
        """Exact table/column, or the single schema name containing (or contained in) it."""
        table = self._schema.table(response.suggested_table) or _unique_fuzzy(
            response.suggested_table, self._schema.tables
        )
        if table is None:
            return None
        column = table.column(response.suggested_column) or _unique_fuzzy(
            response.suggested_column, table.columns
        )
        if column is None:
            return None
        return table, column

    def _merge_reasoning(
        self,
        profile: ColumnProfile,
        candidates: list[MappingCandidate],
        response: ReasoningResponse,
        table: TargetTable,
        column: TargetColumn,
    ) -> list[MappingCandidate]:
        confidence = min(response.confidence, self._rcfg.confidence_cap)
        if confidence < self._scoring.candidate_floor:
            return candidates
        signal = ScoreSignal(
            name="reasoning", weight=1.0, score=confidence, contribution=confidence,
            detail=response.rationale,
        )
        reasoned = MappingCandidate(
            target_table=table.name,
            target_column=column.name,
            confidence=confidence,
            rationale=[signal],
            origin=CandidateOrigin.REASONING,
            transform=parse_transform_name(response.transformation) or infer_transform(profile, column),
        )
        merged: list[MappingCandidate] = []
        for cand in candidates:
            if cand.target == reasoned.target:
                if cand.confidence >= confidence:
                    reasoned = cand.model_copy(update={"rationale": [*cand.rationale, signal]})
                continue
            merged.append(cand)
        merged.append(reasoned)
        return _ranked(merged)

    async def _consult(
        self,
        profile: ColumnProfile,
        candidates: list[MappingCandidate],
        semaphore: asyncio.Semaphore,
    ) -> MappingSuggestion:
        key = ReasoningCache.key_for(profile, self._schema_signature) if self._cache else None
        response = self._cache.safe_get(key) if self._cache and key else None
        status = ReasoningStatus.CACHED if response is not None else ReasoningStatus.ANSWERED

        if response is None:
            request = request_for(profile, self._schema.summary())
            try:
                async with semaphore:
                    logger.info("Consulting reasoning service for column %r", profile.original_name)
                    response = await asyncio.wait_for(
                        self._reasoning.suggest(request),  # type: ignore[union-attr]
                        timeout=self._rcfg.timeout_seconds,
                    )
            except asyncio.TimeoutError:
                logger.warning("Reasoning timed out for column %r", profile.original_name)
                return self._suggestion(profile, candidates, ReasoningStatus.FAILED)
            except ReasoningServiceError as exc:
                logger.warning("%s", exc)
                return self._suggestion(profile, candidates, ReasoningStatus.FAILED)
            except Exception as exc:
                logger.warning("Reasoning call raised for column %r: %s", profile.original_name, exc)
                return self._suggestion(profile, candidates, ReasoningStatus.FAILED)

        resolved = self._resolve_target(response)
        if resolved is None:
            logger.warning(
                "Reasoning named unknown target %s.%s for column %r",
                response.suggested_table, response.suggested_column, profile.original_name,
            )
            return self._suggestion(profile, candidates, ReasoningStatus.FAILED)

        if self._cache is not None and key and status is ReasoningStatus.ANSWERED:
            self._cache.safe_put(key, response)

        table, column = resolved
        merged = self._merge_reasoning(profile, candidates, response, table, column)
        logger.info(
            "Reasoning for %r: %s.%s (%.2f)",
            profile.original_name, table.name, column.name,
            min(response.confidence, self._rcfg.confidence_cap),
        )
        return self._suggestion(profile, merged, status)

    async def suggest_column(self, profile: ColumnProfile, org_id: str | None = None) -> MappingSuggestion:
        suggestions = await self._suggest_profiles([profile], org_id)
        return suggestions[0]

    async def suggest_mappings(
        self, fingerprint: SourceFingerprint, org_id: str | None = None
    ) -> list[MappingSuggestion]:
        """One suggestion per fingerprint column, in column order."""
        return await self._suggest_profiles(fingerprint.columns, org_id)

    async def _suggest_profiles(
        self, profiles: Sequence[ColumnProfile], org_id: str | None
    ) -> list[MappingSuggestion]:
        threshold = self._rcfg.confidence_threshold
        local = [(p, self.local_candidates(p, org_id)) for p in profiles]
        results: list[MappingSuggestion | None] = [None] * len(local)
        pending: list[tuple[int, ColumnProfile, list[MappingCandidate]]] = []

        for i, (profile, candidates) in enumerate(local):
            best = candidates[0].confidence if candidates else 0.0
            if best >= threshold:
                results[i] = self._suggestion(profile, candidates, ReasoningStatus.NOT_NEEDED)
            elif not self.reasoning_enabled:
                results[i] = self._suggestion(profile, candidates, ReasoningStatus.DISABLED)
            else:
                pending.append((i, profile, candidates))

        if pending:
            semaphore = asyncio.Semaphore(max(1, self._rcfg.max_in_flight))
            answers = await asyncio.gather(
                *(self._consult(p, c, semaphore) for _, p, c in pending)
            )
            for (i, _, _), suggestion in zip(pending, answers):
                results[i] = suggestion

        return [r for r in results if r is not None]


def _ranked(candidates: list[MappingCandidate]) -> list[MappingCandidate]:
    # stable: ties keep schema declaration order
    return sorted(candidates, key=lambda c: -c.confidence)


def _unique_fuzzy(name: str, items: Sequence[TargetTable] | Sequence[TargetColumn]):
    needle = name.strip().lower()
    if not needle:
        return None
    hits = [i for i in items if needle in i.name.lower() or i.name.lower() in needle]
    return hits[0] if len(hits) == 1 else None
