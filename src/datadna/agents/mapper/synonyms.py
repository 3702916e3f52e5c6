"""Curated column-name synonyms keyed by destination column name."""

from __future__ import annotations

from datadna.models.schema import TargetColumn

SYNONYMS: dict[str, tuple[str, ...]] = {
    # staff / person
    "first_name": ("fname", "firstname", "first", "given_name", "givenname", "forename"),
    "last_name": ("lname", "lastname", "last", "surname", "family_name", "familyname"),
    "middle_name": ("mname", "middlename", "middle", "mi", "middle_initial"),
    "preferred_name": ("nickname", "goes_by", "known_as", "alias"),
    "email": ("email_address", "emailaddress", "email_addr", "e_mail", "mail", "work_email"),
    "phone_work": ("work_phone", "workphone", "office_phone", "business_phone", "phone", "telephone"),
    "phone_mobile": ("mobile", "cell", "cellphone", "cell_phone", "mobile_phone", "personal_phone"),
    "phone_home": ("home_phone", "homephone"),
    "npi": ("npi_number", "national_provider_id", "provider_npi", "npi_id", "npi_num"),
    "dea_number": ("dea", "dea_num", "dea_id", "dea_license"),
    "employee_id": (
        "emp_id", "empid", "employee_number", "emp_num", "staff_id", "badge", "badge_id",
        "personnel_id",
    ),
    "hire_date": (
        "start_date", "startdate", "date_hired", "employment_date", "hire_dt", "employed_since",
    ),
    "termination_date": ("end_date", "enddate", "term_date", "separation_date", "term_dt", "last_day"),
    "date_of_birth": ("dob", "birthdate", "birth_date", "birthday", "birth_dt"),
    "address_line1": ("address", "street", "street_address", "addr1", "address1", "addr"),
    "address_line2": ("address2", "addr2", "suite", "apt", "unit", "apartment"),
    "city": ("city_name", "town"),
    "state": ("state_code", "st", "province", "state_abbr"),
    "zip": ("zipcode", "zip_code", "postal", "postal_code", "postalcode"),
    "gender": ("sex", "gender_code"),
    "employment_status": ("status", "emp_status", "active_status", "employee_status"),
    "employment_type": ("emp_type", "job_type", "position_type", "work_type"),
    "department_name": ("dept", "department", "dept_name", "division"),
    "department_code": ("dept_code", "dept_id", "department_id", "dept_num"),
    "license_number": ("lic_num", "license_num", "license_no", "lic_no", "license_id"),
    "expiration_date": ("exp_date", "expires", "expiry", "expiration", "exp_dt", "valid_until"),
    "issued_date": ("issue_date", "issue_dt", "granted_date", "effective_date"),
    "facility_name": ("location", "site", "site_name", "building", "campus"),
    "facility_code": ("location_code", "site_code", "site_id", "building_code"),
    # patient
    "identifier_mrn": (
        "mrn", "medical_record_number", "med_rec_num", "patient_id", "patient_number",
        "chart_number", "account_number",
    ),
    "identifier_ssn": ("ssn", "social_security", "social_security_number", "ssn_last_4"),
    "name_given": ("first_name", "given", "fname", "patient_first_name", "pt_first"),
    "name_family": ("last_name", "family", "lname", "patient_last_name", "pt_last", "surname"),
    "birth_date": ("dob", "date_of_birth", "birthdate", "birthday", "patient_dob", "pt_dob"),
    "telecom_phone": ("phone", "telephone", "contact_phone", "patient_phone", "pt_phone"),
    "telecom_email": ("email", "patient_email", "contact_email", "pt_email"),
    "address_line": ("address", "street_address", "patient_address", "home_address", "addr1"),
    "address_postal_code": ("zip", "zipcode", "zip_code", "postal_code", "patient_zip"),
    "address_city": ("city", "patient_city", "home_city"),
    "address_state": ("state", "patient_state", "home_state", "state_code"),
    "marital_status": ("marital", "marital_code", "marriage_status"),
    # observation
    "code_loinc": ("loinc", "loinc_code", "loinc_num", "observation_code", "test_code", "lab_code"),
    "code_snomed": ("snomed", "snomed_code", "snomed_ct", "clinical_code"),
    "value_quantity": ("result", "value", "result_value", "test_result", "lab_value", "numeric_result"),
    "value_quantity_unit": ("unit", "units", "uom", "result_unit", "measurement_unit"),
    "value_string": ("result_text", "text_result", "string_result", "narrative_result"),
    "effective_datetime": (
        "observation_date", "result_date", "test_date", "collected_date", "specimen_date",
    ),
    "interpretation": ("abnormal_flag", "result_flag", "interp", "interpretation_code"),
    # condition
    "code_icd10": ("icd10", "icd_10", "icd10_code", "diagnosis_code", "dx_code", "icd_code"),
    "clinical_status": ("condition_status", "dx_status", "active_inactive"),
    "onset_datetime": ("onset", "onset_date", "diagnosis_date", "dx_date", "diagnosed_on"),
    "abatement_datetime": ("resolved", "resolved_date", "resolution_date"),
    "recorded_date": ("entry_date", "documented_date", "record_date", "charted_date"),
    # medication
    "medication_rxnorm": ("rxnorm", "rxnorm_code", "rx_code", "drug_code"),
    "medication_ndc": ("ndc", "ndc_code", "national_drug_code", "drug_ndc"),
    "medication_display": ("medication", "drug_name", "med_name", "prescription", "rx_name"),
    "dosage_text": ("dosage", "dose", "sig", "instructions", "dosing_instructions", "directions"),
    "dosage_route": ("route", "admin_route", "route_of_administration", "delivery_route"),
    "number_of_refills": ("refills", "refill_count", "refills_remaining", "refill_number"),
    "days_supply": ("supply_days", "day_supply", "days"),
    "authored_on": ("prescription_date", "rx_date", "order_date", "written_date"),
    # procedure
    "code_cpt": ("cpt", "cpt_code", "procedure_code", "service_code", "billing_code"),
    "performed_datetime": ("procedure_date", "service_date", "performed_date", "surgery_date"),
    "performer": ("provider", "performing_provider", "surgeon", "physician", "practitioner"),
}


def compact(name: str) -> str:
    return name.replace("_", "")


def synonyms_for(column: TargetColumn) -> frozenset[str]:
    """Compacted names that count as synonyms of ``column``, itself included."""
    names = {column.name, *column.synonyms, *SYNONYMS.get(column.name, ())}
    return frozenset(compact(n.lower()) for n in names)
