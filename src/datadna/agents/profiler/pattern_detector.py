"""PatternDetector: value and column classification into semantic patterns."""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from datadna.agents.base import BaseAgent
from datadna.agents.profiler.npi_validator import validate_provider_identifier
from datadna.core.config import AppSettings
from datadna.core.types import Scalar, stringify
from datadna.models.fingerprint import ColumnProfile
from datadna.models.patterns import FREE_TEXT, PatternCategory as P, inferred_type_for

logger = logging.getLogger(__name__)


@dataclass
class ValuePattern:
    """Regex alternatives recognising one pattern category."""

    category: P
    regexes: tuple[str, ...]
    case_sensitive: bool = True

    def __post_init__(self) -> None:
        flags = 0 if self.case_sensitive else re.IGNORECASE
        self._compiled = [re.compile(rx, flags) for rx in self.regexes]

    def matches(self, value: str) -> bool:
        return any(rx.match(value) for rx in self._compiled)


_FHIR_TYPES = (
    "Patient|Observation|Condition|MedicationRequest|Procedure|AllergyIntolerance|"
    "Immunization|DiagnosticReport|Encounter|CarePlan|Practitioner|Organization|"
    "Location|Device|Specimen|ServiceRequest|ClinicalImpression|Goal|RiskAssessment|"
    "FamilyMemberHistory"
)

# Most specific first. NPI additionally requires a passing checksum.
VALUE_PATTERNS: tuple[ValuePattern, ...] = (
    ValuePattern(P.LOINC, (
        r"^\d{1,5}-\d$",
        r"^LP\d{5,7}-\d$",
        r"^http://loinc\.org\|\d+-\d$",
    )),
    ValuePattern(P.ICD10, (
        r"^[A-TV-Z]\d{2}(\.\d{1,4})?$",
        r"^[A-Z]\d{2}\.\d{1,2}$",
        r"^http://hl7\.org/fhir/sid/icd-10(-cm)?\|[A-Z]\d{2}",
    )),
    ValuePattern(P.NDC, (
        r"^\d{4}-\d{4}-\d{2}$",
        r"^\d{5}-\d{3}-\d{2}$",
        r"^\d{5}-\d{4}-\d$",
        r"^\d{11}$",
    )),
    ValuePattern(P.FHIR_REFERENCE, (
        r"^(Patient|Practitioner|Organization|Location|Encounter|Observation|Condition|Procedure)/[a-zA-Z0-9-]+$",
        r"^urn:uuid:[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$",
    )),
    ValuePattern(P.FHIR_RESOURCE_TYPE, (rf"^({_FHIR_TYPES})$",)),
    ValuePattern(P.NPI, (r"^\d{10}$",)),
    ValuePattern(P.SSN, (r"^\d{3}-?\d{2}-?\d{4}$", r"^XXX-XX-\d{4}$", r"^\*{3}-\*{2}-\d{4}$")),
    ValuePattern(P.UUID, (r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",), False),
    ValuePattern(P.EMAIL, (r"^[^\s@]+@[^\s@]+\.[^\s@]+$",)),
    ValuePattern(P.PHONE, (
        r"^\(\d{3}\)\s?\d{3}[-.\s]?\d{4}$",
        r"^(\+?1[-.\s])?\d{3}[-.\s]\d{3}[-.\s]\d{4}$",
        r"^\+1?\d{10}$",
    )),
    ValuePattern(P.DATE_ISO, (
        r"^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$",
    )),
    ValuePattern(P.DATE, (
        r"^\d{1,2}/\d{1,2}/\d{2,4}$",
        r"^\d{1,2}-\d{1,2}-\d{2,4}$",
        r"^(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4}$",
    ), False),
    ValuePattern(P.ZIP, (r"^\d{5}(-\d{4})?$",)),
    ValuePattern(P.CPT, (r"^\d{5}$", r"^http://www\.ama-assn\.org/go/cpt\|\d{5}$")),
    ValuePattern(P.ID_NUMERIC, (r"^\d+$",)),
    ValuePattern(P.RXNORM, (r"^\d{5,7}$", r"^http://www\.nlm\.nih\.gov/research/umls/rxnorm\|\d+$")),
    ValuePattern(P.SNOMED_CT, (r"^\d{6,18}$", r"^http://snomed\.info/sct\|\d+$")),
    ValuePattern(P.STATE_CODE, (r"^[A-Z]{2}$",)),
    ValuePattern(P.CURRENCY, (r"^-?\$?\d{1,3}(,\d{3})*(\.\d{2})?$", r"^-?\$?\d+\.\d{2}$")),
    ValuePattern(P.PERCENTAGE, (r"^\d{1,3}(\.\d+)?%?$",)),
    ValuePattern(P.BOOLEAN, (r"^(yes|no|true|false|1|0|y|n|t|f)$",), False),
    ValuePattern(P.NAME_FULL, (
        r"^[A-Z][a-zA-Z'-]+,\s*[A-Z][a-zA-Z'-]+",
        r"^[A-Z][a-zA-Z'-]+(\s+[A-Z][a-zA-Z'.-]*)?\s+[A-Z][a-zA-Z'-]+$",
    )),
    ValuePattern(P.NAME_FIRST, (r"^[A-Z][a-z]{1,20}$",)),
    ValuePattern(P.NAME_LAST, (r"^[A-Z][a-zA-Z'-]{1,30}$",)),
    ValuePattern(P.ID_ALPHANUMERIC, (r"^[A-Z0-9]{4,20}$",), False),
    ValuePattern(P.CODE, (r"^[A-Z_]{2,20}$",)),
)

# Tie-break rank: position in VALUE_PATTERNS, free text last.
SPECIFICITY: dict[P, int] = {vp.category: i for i, vp in enumerate(VALUE_PATTERNS)}
SPECIFICITY[P.TEXT_SHORT] = len(VALUE_PATTERNS)
SPECIFICITY[P.TEXT_LONG] = len(VALUE_PATTERNS) + 1

NOISE_TOKENS = frozenset({"col", "column", "fld", "field", "the", "tbl", "attr"})

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def is_null(value: Scalar) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_column_name(name: str) -> str:
    """Canonical key: lowercase, single '_' separators, noise tokens dropped."""
    tokens = [t for t in _NON_ALNUM.sub("_", name.strip().lower()).split("_") if t]
    kept = [t for t in tokens if t not in NOISE_TOKENS]
    return "_".join(kept or tokens)


class PatternDetector(BaseAgent):
    """Classifies raw values and whole columns into PatternCategory values."""

    def __init__(self, *, settings: AppSettings | None = None) -> None:
        super().__init__(settings=settings)
        self._cfg = self._settings.pattern

    def detect_value_pattern(self, value: Scalar) -> tuple[P, ...]:
        """All patterns matching ``value``, most specific first.

        Values matching nothing specific fall back to short or long free text;
        null and blank values match nothing.
        """
        if is_null(value):
            return ()
        if isinstance(value, bool):
            return (P.BOOLEAN,)
        text = stringify(value)
        matched: list[P] = []
        for vp in VALUE_PATTERNS:
            if not vp.matches(text):
                continue
            if vp.category is P.NPI and not validate_provider_identifier(text):
                continue
            matched.append(vp.category)
        if matched:
            return tuple(matched)
        if len(text) > self._cfg.long_text_threshold:
            return (P.TEXT_LONG,)
        return (P.TEXT_SHORT,)

    def analyze_column(self, name: str, values: Sequence[Scalar]) -> ColumnProfile:
        """Profile the first ``sample_size`` values of a column."""
        sample = list(values[: self._cfg.sample_size])
        texts = [stringify(v) for v in sample if not is_null(v)]
        normalized = normalize_column_name(name)

        if not texts:
            return ColumnProfile(
                original_name=name,
                normalized_name=normalized,
                primary_pattern=P.TEXT_SHORT,
                pattern_confidence=0.0,
                inferred_type=inferred_type_for(P.TEXT_SHORT),
                null_fraction=1.0,
                unique_fraction=0.0,
                sampled_count=len(sample),
            )

        counts: Counter[P] = Counter()
        for value in sample:
            counts.update(self.detect_value_pattern(value))

        ranked = sorted(counts, key=lambda p: (-counts[p], SPECIFICITY[p]))
        if counts[P.BOOLEAN] == len(texts):
            # 0/1 flag columns also match the numeric patterns
            ranked = [P.BOOLEAN] + [p for p in ranked if p is not P.BOOLEAN]
        primary = ranked[0]
        if primary in FREE_TEXT:
            # free text is one class; pick short/long by average length
            avg = sum(len(t) for t in texts) / len(texts)
            primary = P.TEXT_LONG if avg > self._cfg.long_text_threshold else P.TEXT_SHORT
            ranked = [primary] + [p for p in ranked if p is not primary]
            free_hits = sum(counts[p] for p in FREE_TEXT)
            confidence = free_hits / len(texts)
        else:
            confidence = counts[primary] / len(texts)

        profile = ColumnProfile(
            original_name=name,
            normalized_name=normalized,
            primary_pattern=primary,
            secondary_patterns=tuple(ranked[1:]),
            pattern_confidence=min(confidence, 1.0),
            inferred_type=inferred_type_for(primary),
            null_fraction=(len(sample) - len(texts)) / len(sample),
            unique_fraction=len(set(texts)) / len(texts),
            average_length=sum(len(t) for t in texts) / len(texts),
            sample_values=tuple(texts[: self._cfg.sample_value_count]),
            sampled_count=len(sample),
            non_null_count=len(texts),
        )
        logger.debug(
            "Profiled column %r: %s (%.2f)", name, profile.primary_pattern, profile.pattern_confidence
        )
        return profile

    @staticmethod
    def validate_provider_identifier(value: Scalar) -> bool:
        return validate_provider_identifier(value)

    @staticmethod
    def normalize_column_name(name: str) -> str:
        return normalize_column_name(name)
