"""DNAGenerator: structural fingerprints of source datasets and their similarity.

The fingerprint only looks at the multiset of primary patterns, so two
exports with differently named or ordered but semantically identical
columns produce the same signature vector and structural hash.
"""

from __future__ import annotations

import hashlib
import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence

from datadna.agents.base import BaseAgent
from datadna.agents.profiler.pattern_detector import PatternDetector
from datadna.core.config import AppSettings
from datadna.core.exceptions import InvalidSourceError
from datadna.core.types import SCALAR_TYPES, Scalar
from datadna.models.fingerprint import (
    ColumnProfile,
    SimilarMigration,
    SourceFingerprint,
    SourceKind,
)
from datadna.models.patterns import PatternCategory

logger = logging.getLogger(__name__)

SIGNATURE_SLOTS: tuple[PatternCategory, ...] = tuple(PatternCategory)

# Column-name fragments that give away the exporting system.
SOURCE_SYSTEM_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("EPIC", ("epic", "myc", "ser_")),
    ("CERNER", ("cerner", "millennium", "prsnl_")),
    ("MEDITECH", ("meditech", "mt_", "mtweb")),
    ("ATHENAHEALTH", ("athena", "ath_")),
    ("ALLSCRIPTS", ("allscripts", "touchworks")),
)


def parse_source_kind(kind: SourceKind | str) -> SourceKind:
    try:
        return SourceKind(kind)
    except ValueError as exc:
        allowed = ", ".join(k.value for k in SourceKind)
        raise InvalidSourceError(f"Unknown source kind {kind!r}; expected one of: {allowed}") from exc


def check_rows(rows: Sequence[Mapping[str, Scalar]]) -> None:
    """Reject rows that are not mappings of scalar values."""
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise InvalidSourceError(f"Row {i} is {type(row).__name__}, expected a mapping")
        for key, value in row.items():
            if value is not None and not isinstance(value, SCALAR_TYPES):
                raise InvalidSourceError(
                    f"Row {i} column {key!r} holds {type(value).__name__}; "
                    "only str, int, float, bool and None are accepted"
                )


def guess_source_system(column_names: Iterable[str]) -> str | None:
    names = [n.lower() for n in column_names]
    for system, markers in SOURCE_SYSTEM_MARKERS:
        if any(n.startswith(m) or f"_{m}" in n for n in names for m in markers):
            return system
    return None


def signature_vector(profiles: Sequence[ColumnProfile]) -> tuple[float, ...]:
    """Primary-pattern histogram normalized to sum to 1 (all zero when empty)."""
    if not profiles:
        return tuple(0.0 for _ in SIGNATURE_SLOTS)
    counts = Counter(p.primary_pattern for p in profiles)
    total = len(profiles)
    return tuple(counts.get(slot, 0) / total for slot in SIGNATURE_SLOTS)


def structural_hash(profiles: Sequence[ColumnProfile]) -> str:
    ordered = sorted(str(p.primary_pattern) for p in profiles)
    return hashlib.sha256("|".join(ordered).encode()).hexdigest()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    mag = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if mag == 0:
        return 0.0
    if tuple(a) == tuple(b):
        return 1.0
    return max(0.0, min(1.0, dot / mag))


class DNAGenerator(BaseAgent):
    """Builds SourceFingerprints and ranks catalogued ones by similarity."""

    def __init__(
        self,
        *,
        settings: AppSettings | None = None,
        detector: PatternDetector | None = None,
    ) -> None:
        super().__init__(settings=settings)
        self._detector = detector or PatternDetector(settings=self._settings)
        self._cfg = self._settings.fingerprint

    @property
    def detector(self) -> PatternDetector:
        return self._detector

    def generate_dna(
        self,
        source_kind: SourceKind | str,
        column_names: Sequence[str],
        sample_rows: Sequence[Mapping[str, Scalar]],
        source_system_hint: str | None = None,
    ) -> SourceFingerprint:
        kind = parse_source_kind(source_kind)
        check_rows(sample_rows)

        profiles = tuple(
            self._detector.analyze_column(name, [row.get(name) for row in sample_rows])
            for name in column_names
        )
        shash = structural_hash(profiles)
        fingerprint = SourceFingerprint(
            id=hashlib.sha256(f"{kind}:{shash}".encode()).hexdigest()[:16],
            source_kind=kind,
            source_system_guess=source_system_hint or guess_source_system(column_names),
            column_count=len(profiles),
            row_count=len(sample_rows),
            columns=profiles,
            structural_hash=shash,
            signature_vector=signature_vector(profiles),
        )
        logger.info(
            "Generated DNA %s: %d columns, %d rows, system=%s",
            fingerprint.id, fingerprint.column_count, fingerprint.row_count,
            fingerprint.source_system_guess,
        )
        return fingerprint

    def calculate_similarity(self, a: SourceFingerprint, b: SourceFingerprint) -> float:
        return cosine_similarity(a.signature_vector, b.signature_vector)

    def find_similar(
        self,
        fingerprint: SourceFingerprint,
        catalog: Iterable[SourceFingerprint],
        threshold: float | None = None,
        limit: int | None = None,
    ) -> list[SimilarMigration]:
        """Catalog entries at or above ``threshold``, best first."""
        threshold = self._cfg.similarity_threshold if threshold is None else threshold
        limit = self._cfg.max_similar if limit is None else limit
        matches = []
        for other in catalog:
            score = self.calculate_similarity(fingerprint, other)
            if score >= threshold:
                matches.append(
                    SimilarMigration(
                        fingerprint_id=other.id,
                        similarity=score,
                        source_system_guess=other.source_system_guess,
                        column_count=other.column_count,
                        detected_at=other.detected_at,
                    )
                )
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]
