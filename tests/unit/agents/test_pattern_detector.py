"""Unit tests for PatternDetector and the NPI checksum."""

from __future__ import annotations

import pytest

from datadna.agents.profiler.npi_validator import luhn_check_digit, validate_provider_identifier
from datadna.agents.profiler.pattern_detector import PatternDetector, normalize_column_name
from datadna.core.config import AppSettings, PatternConfig
from datadna.models.patterns import InferredType, PatternCategory as P


@pytest.fixture
def detector():
    return PatternDetector()


class TestProviderIdentifier:
    def test_known_valid_npi(self):
        assert validate_provider_identifier("1234567893") is True

    def test_wrong_check_digit(self):
        assert validate_provider_identifier("1234567890") is False

    def test_integer_value_accepted(self):
        assert validate_provider_identifier(1234567893) is True

    def test_integral_float_accepted(self):
        assert validate_provider_identifier(1234567893.0) is True
        assert validate_provider_identifier(1234567893.5) is False

    @pytest.mark.parametrize("value", ["123456789", "12345678930", "12345-7893", "", None, True])
    def test_malformed_rejected(self, value):
        assert validate_provider_identifier(value) is False

    def test_check_digit_of_prefixed_payload(self):
        assert luhn_check_digit("80840" + "123456789") == 3


class TestDetectValuePattern:
    def test_valid_npi_is_most_specific(self, detector):
        patterns = detector.detect_value_pattern("1234567893")
        assert patterns[0] is P.NPI
        assert P.ID_NUMERIC in patterns

    def test_invalid_npi_falls_back_to_numeric_id(self, detector):
        patterns = detector.detect_value_pattern("1234567890")
        assert P.NPI not in patterns
        assert patterns[0] is P.ID_NUMERIC

    def test_email(self, detector):
        assert detector.detect_value_pattern("jane.doe@example.org") == (P.EMAIL,)

    def test_iso_date(self, detector):
        assert detector.detect_value_pattern("2020-01-15")[0] is P.DATE_ISO

    @pytest.mark.parametrize("value", ["2020-01-15T08:30:00Z", "2020-01-15 08:30", "2020-01-15T08:30:00.123+05:30"])
    def test_iso_datetime_forms(self, detector, value):
        assert detector.detect_value_pattern(value)[0] is P.DATE_ISO

    @pytest.mark.parametrize("value", ["2020-01-15garbage", "2020-01-15T08", "2020-01-15T08:30:00Zjunk"])
    def test_iso_date_must_be_whole_value(self, detector, value):
        assert P.DATE_ISO not in detector.detect_value_pattern(value)

    def test_us_date(self, detector):
        assert detector.detect_value_pattern("01/15/2020")[0] is P.DATE

    def test_formatted_phone(self, detector):
        assert detector.detect_value_pattern("(555) 123-4567")[0] is P.PHONE

    def test_loinc_before_generic_codes(self, detector):
        assert detector.detect_value_pattern("2345-7")[0] is P.LOINC

    def test_fhir_reference(self, detector):
        assert detector.detect_value_pattern("Patient/abc-123")[0] is P.FHIR_REFERENCE

    def test_python_bool_is_boolean_only(self, detector):
        assert detector.detect_value_pattern(True) == (P.BOOLEAN,)

    def test_integral_float_reads_as_integer(self, detector):
        assert detector.detect_value_pattern(12345.0)[0] is P.ZIP

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_null_matches_nothing(self, detector, value):
        assert detector.detect_value_pattern(value) == ()

    def test_unmatched_short_text(self, detector):
        assert detector.detect_value_pattern("call back tomorrow") == (P.TEXT_SHORT,)

    def test_unmatched_long_text(self, detector):
        note = "patient reported mild discomfort after the procedure and was advised to rest"
        assert detector.detect_value_pattern(note) == (P.TEXT_LONG,)


class TestAnalyzeColumn:
    def test_fractions_account_for_every_sampled_value(self, detector):
        profile = detector.analyze_column("Email", ["a@b.com", None, "", "c@d.org"])
        assert profile.sampled_count == 4
        assert profile.non_null_count == 2
        assert profile.null_fraction == 0.5
        assert profile.null_fraction * profile.sampled_count + profile.non_null_count == profile.sampled_count
        assert profile.primary_pattern is P.EMAIL
        assert profile.pattern_confidence == 1.0

    def test_all_null_column(self, detector):
        profile = detector.analyze_column("notes", [None, "", None])
        assert profile.null_fraction == 1.0
        assert profile.pattern_confidence == 0.0
        assert profile.non_null_count == 0

    def test_unique_fraction(self, detector):
        profile = detector.analyze_column("state", ["CA", "CA", "NY", "TX"])
        assert profile.unique_fraction == 0.75
        assert profile.primary_pattern is P.STATE_CODE

    def test_mixed_column_reports_partial_confidence(self, detector):
        profile = detector.analyze_column("npi", ["1234567893", "9876543213", "n/a", "1111111112"])
        assert profile.primary_pattern is P.NPI
        assert profile.pattern_confidence == 0.75

    def test_names_prefer_first_name_on_tie(self, detector):
        profile = detector.analyze_column("last_name", ["Smith", "Doe", "Johnson"])
        assert profile.primary_pattern is P.NAME_FIRST
        assert P.NAME_LAST in profile.secondary_patterns

    def test_free_text_is_one_class(self, detector):
        values = ["needs follow up", "ok", "reviewed by charge nurse"]
        profile = detector.analyze_column("comments", values)
        assert profile.primary_pattern is P.TEXT_SHORT
        assert profile.pattern_confidence == 1.0

    def test_zero_one_column_is_boolean(self, detector):
        profile = detector.analyze_column("is_active", ["1", "0", 1, 0.0, None])
        assert profile.primary_pattern is P.BOOLEAN
        assert profile.pattern_confidence == 1.0
        assert profile.inferred_type is InferredType.BOOLEAN
        assert P.ID_NUMERIC in profile.secondary_patterns

    def test_numeric_ids_stay_numeric(self, detector):
        profile = detector.analyze_column("dept_id", ["1", "0", "42"])
        assert profile.primary_pattern is P.ID_NUMERIC

    def test_date_column_inferred_type(self, detector):
        profile = detector.analyze_column("hire_date", ["2020-01-15", "2019-06-01"])
        assert profile.inferred_type is InferredType.DATE

    def test_sample_size_and_sample_values_are_bounded(self):
        settings = AppSettings(pattern=PatternConfig(sample_size=10, sample_value_count=3))
        detector = PatternDetector(settings=settings)
        profile = detector.analyze_column("id", [str(i) for i in range(1000, 1100)])
        assert profile.sampled_count == 10
        assert profile.sample_values == ("1000", "1001", "1002")


class TestNormalizeColumnName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("First Name", "first_name"),
            ("FIRST-NAME", "first_name"),
            ("  email__address ", "email_address"),
            ("fld_hire_date", "hire_date"),
            ("The Column NPI", "npi"),
            ("FirstName", "firstname"),
        ],
    )
    def test_canonical_forms(self, raw, expected):
        assert normalize_column_name(raw) == expected

    def test_only_noise_tokens_are_kept(self):
        assert normalize_column_name("col") == "col"

    def test_static_wrapper_matches_module_function(self):
        assert PatternDetector.normalize_column_name("Hire Date") == "hire_date"
