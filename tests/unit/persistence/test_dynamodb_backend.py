"""Unit tests for the DynamoDB learned-mapping store and fingerprint catalog using moto."""

from __future__ import annotations

from decimal import Decimal

import boto3
import pytest
from moto import mock_aws

from datadna.agents.fingerprint.dna_generator import DNAGenerator
from datadna.agents.learning.learning_store import LearningStore
from datadna.core.types import utcnow
from datadna.models.mapping import ConfirmedMapping, LearnedMapping
from datadna.models.migration import RowOutcome, RowStatus
from datadna.models.patterns import PatternCategory as P
from datadna.persistence.dynamodb_backend import (
    FINGERPRINTS_TABLE,
    LEARNED_MAPPINGS_TABLE,
    DynamoDBFingerprintCatalog,
    DynamoDBLearnedMappingStore,
    learned_mapping_item,
)

TABLE_SUFFIX = "-test"
REGION = "us-east-1"

# ---------- helpers ----------

def _create_table(client, name: str, pk: str = "PK", sk: str = "SK"):
    """Create a DynamoDB table with PK/SK key schema."""
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": pk, "KeyType": "HASH"},
            {"AttributeName": sk, "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": pk, "AttributeType": "S"},
            {"AttributeName": sk, "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


def _learned(**overrides) -> LearnedMapping:
    data = dict(
        org_id="org-a", source_pattern=P.NPI, normalized_name="prov_no",
        target_table="hc_staff", target_column="npi", confidence=0.6,
        times_used=1, times_succeeded=1, version=1,
    )
    data.update(overrides)
    return LearnedMapping(**data)


# ---------- fixtures ----------

@pytest.fixture
def aws():
    with mock_aws():
        ddb = boto3.resource("dynamodb", region_name=REGION)
        client = boto3.client("dynamodb", region_name=REGION)
        for name in (LEARNED_MAPPINGS_TABLE, FINGERPRINTS_TABLE):
            _create_table(client, f"{name}{TABLE_SUFFIX}")
        yield ddb


@pytest.fixture
def store(aws):
    return DynamoDBLearnedMappingStore(table_suffix=TABLE_SUFFIX, region=REGION)


@pytest.fixture
def catalog(aws):
    return DynamoDBFingerprintCatalog(table_suffix=TABLE_SUFFIX, region=REGION)


# ---------- item layout ----------

class TestItemLayout:
    def test_keys_and_attributes(self):
        when = utcnow()
        item = learned_mapping_item(_learned(last_used_at=when))
        assert item["PK"] == "ORG#org-a"
        assert item["SK"] == "MAP#NPI#prov_no#hc_staff#npi"
        assert item["confidence"] == Decimal("0.6")
        assert item["lastUsedAt"] == when.isoformat()

    def test_last_used_omitted_when_unset(self):
        assert "lastUsedAt" not in learned_mapping_item(_learned())


# ---------- learned mapping store ----------

class TestLearnedMappingStore:
    def test_get_round_trips(self, store):
        assert store.put(_learned(last_used_at=utcnow()), expected_version=None) is True
        got = store.get("org-a", P.NPI, "prov_no", "hc_staff", "npi")
        assert got.confidence == pytest.approx(0.6)
        assert got.times_used == 1
        assert got.version == 1
        assert got.last_used_at is not None
        assert got.recent_runs == []

    def test_recent_runs_round_trip(self, store):
        store.put(_learned(recent_runs=["run-1", "run-2"]), expected_version=None)
        got = store.get("org-a", P.NPI, "prov_no", "hc_staff", "npi")
        assert got.recent_runs == ["run-1", "run-2"]

    def test_get_missing(self, store):
        assert store.get("org-a", P.NPI, "prov_no", "hc_staff", "npi") is None

    def test_create_only_once(self, store):
        assert store.put(_learned(), expected_version=None) is True
        assert store.put(_learned(), expected_version=None) is False

    def test_put_requires_matching_version(self, store):
        store.put(_learned(), expected_version=None)
        assert store.put(_learned(version=2, confidence=0.7), expected_version=3) is False
        assert store.put(_learned(version=2, confidence=0.7), expected_version=1) is True
        assert store.get("org-a", P.NPI, "prov_no", "hc_staff", "npi").confidence == pytest.approx(0.7)

    def test_list_for_key_and_org(self, store):
        store.put(_learned(), None)
        store.put(_learned(target_table="hc_organization"), None)
        store.put(_learned(normalized_name="prov_no2"), None)
        store.put(_learned(org_id="org-b"), None)
        assert {m.target_table for m in store.list_for_key("org-a", P.NPI, "prov_no")} == {
            "hc_staff", "hc_organization",
        }
        assert len(store.list_for_org("org-a")) == 3

    def test_run_markers_are_not_mappings(self, store):
        assert store.run_learned("org-a", "run-1") is False
        assert store.mark_run_learned("org-a", "run-1") is True
        assert store.run_learned("org-a", "run-1") is True
        assert store.mark_run_learned("org-a", "run-1") is False
        assert store.list_for_org("org-a") == []

    def test_learning_store_over_dynamodb(self, store):
        learning = LearningStore(store=store)
        store.put(_learned(confidence=0.5, times_used=0, times_succeeded=0), None)

        mapping = ConfirmedMapping(
            source_column="prov_no", target_table="hc_staff", target_column="npi",
            source_pattern=P.NPI, normalized_name="prov_no",
        )
        outcomes = [RowOutcome(row_index=0, status=RowStatus.SUCCESS, applied_mapping={"prov_no": "hc_staff.npi"})]
        learning.record_outcome("org-a", "run-1", [mapping], outcomes)
        got = store.get("org-a", P.NPI, "prov_no", "hc_staff", "npi")
        assert got.version == 2
        assert got.confidence == pytest.approx(0.6)
        assert got.recent_runs == ["run-1"]
        assert store.run_learned("org-a", "run-1") is True


# ---------- fingerprint catalog ----------

class TestFingerprintCatalog:
    def test_save_and_list(self, catalog):
        fp = DNAGenerator().generate_dna("tabular-file", ["npi"], [{"npi": "1234567893"}])
        catalog.save("org-a", fp)
        catalog.save("org-a", fp)
        listed = catalog.list("org-a")
        assert [f.id for f in listed] == [fp.id]
        assert listed[0].signature_vector == fp.signature_vector
        assert catalog.list("org-b") == []

    def test_unreadable_items_skipped(self, catalog, aws):
        aws.Table(f"{FINGERPRINTS_TABLE}{TABLE_SUFFIX}").put_item(
            Item={"PK": "ORG#org-a", "SK": "FP#broken", "payload": "{not json"}
        )
        assert catalog.list("org-a") == []
