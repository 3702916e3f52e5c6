"""Built-in destination schema: healthcare workforce tables plus FHIR R4 resources."""

from __future__ import annotations

from datadna.models.schema import DestinationSchema, SemanticType as S, TargetColumn, TargetTable


def _col(name: str, kind: S = S.SHORT_TEXT, required: bool = False, *synonyms: str) -> TargetColumn:
    return TargetColumn(name=name, semantic_type=kind, required=required, synonyms=synonyms)


# Declaration order matters: equally scored candidates rank in this order.
_TABLES: tuple[TargetTable, ...] = (
    TargetTable(name="hc_staff", columns=(
        _col("employee_id", S.IDENTIFIER),
        _col("first_name", S.FIRST_NAME, True),
        _col("last_name", S.LAST_NAME, True),
        _col("middle_name", S.FIRST_NAME),
        _col("preferred_name", S.FIRST_NAME),
        _col("email", S.EMAIL),
        _col("phone_work", S.PHONE),
        _col("phone_mobile", S.PHONE),
        _col("npi", S.PROVIDER_IDENTIFIER),
        _col("dea_number", S.CODE),
        _col("date_of_birth", S.DATE),
        _col("hire_date", S.DATE),
        _col("termination_date", S.DATE),
        _col("employment_status", S.SHORT_TEXT),
        _col("employment_type", S.SHORT_TEXT),
        _col("department_code", S.CODE),
        _col("facility_code", S.CODE),
    )),
    TargetTable(name="hc_staff_license", columns=(
        _col("license_number", S.CODE, True),
        _col("license_type", S.SHORT_TEXT, False, "lic_type", "credential", "credential_type"),
        _col("state", S.STATE_CODE),
        _col("issued_date", S.DATE),
        _col("expiration_date", S.DATE),
    )),
    TargetTable(name="hc_department", columns=(
        _col("department_code", S.CODE, True),
        _col("department_name", S.SHORT_TEXT, True),
    )),
    TargetTable(name="hc_facility", columns=(
        _col("facility_code", S.CODE, True),
        _col("facility_name", S.SHORT_TEXT, True),
        _col("address_line1", S.SHORT_TEXT),
        _col("address_line2", S.SHORT_TEXT),
        _col("city", S.SHORT_TEXT),
        _col("state", S.STATE_CODE),
        _col("zip", S.ZIP),
    )),
    TargetTable(name="hc_organization", columns=(
        _col("organization_name", S.SHORT_TEXT, True, "org_name", "organization", "company"),
        _col("npi", S.PROVIDER_IDENTIFIER),
        _col("tax_id", S.IDENTIFIER, False, "ein", "tin", "federal_tax_id"),
    )),
    TargetTable(name="fhir_patient", columns=(
        _col("identifier_mrn", S.IDENTIFIER),
        _col("identifier_ssn", S.SSN),
        _col("name_given", S.FIRST_NAME),
        _col("name_family", S.LAST_NAME),
        _col("birth_date", S.DATE),
        _col("gender", S.CODE),
        _col("marital_status", S.CODE),
        _col("telecom_phone", S.PHONE),
        _col("telecom_email", S.EMAIL),
        _col("address_line", S.SHORT_TEXT),
        _col("address_city", S.SHORT_TEXT),
        _col("address_state", S.STATE_CODE),
        _col("address_postal_code", S.ZIP),
    )),
    TargetTable(name="fhir_observation", columns=(
        _col("subject_reference", S.FHIR_REFERENCE, True, "patient_ref", "subject"),
        _col("code_loinc", S.LOINC),
        _col("code_snomed", S.SNOMED_CT),
        _col("value_quantity", S.NUMBER),
        _col("value_quantity_unit", S.CODE),
        _col("value_string", S.LONG_TEXT),
        _col("effective_datetime", S.DATETIME),
        _col("interpretation", S.CODE),
    )),
    TargetTable(name="fhir_condition", columns=(
        _col("subject_reference", S.FHIR_REFERENCE, True, "patient_ref", "subject"),
        _col("code_icd10", S.ICD10),
        _col("code_snomed", S.SNOMED_CT),
        _col("clinical_status", S.CODE),
        _col("onset_datetime", S.DATETIME),
        _col("abatement_datetime", S.DATETIME),
        _col("recorded_date", S.DATE),
    )),
    TargetTable(name="fhir_medication_request", columns=(
        _col("subject_reference", S.FHIR_REFERENCE, True, "patient_ref", "subject"),
        _col("medication_rxnorm", S.RXNORM),
        _col("medication_ndc", S.NDC),
        _col("medication_display", S.SHORT_TEXT),
        _col("dosage_text", S.LONG_TEXT),
        _col("dosage_route", S.CODE),
        _col("number_of_refills", S.NUMBER),
        _col("days_supply", S.NUMBER),
        _col("authored_on", S.DATE),
    )),
    TargetTable(name="fhir_procedure", columns=(
        _col("subject_reference", S.FHIR_REFERENCE, True, "patient_ref", "subject"),
        _col("code_cpt", S.CPT),
        _col("code_snomed", S.SNOMED_CT),
        _col("performed_datetime", S.DATETIME),
        _col("performer", S.FULL_NAME),
    )),
)


def default_schema() -> DestinationSchema:
    return DestinationSchema(name="healthcare-workforce-fhir", tables=_TABLES)
