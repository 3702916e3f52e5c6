"""Integration tests for the DynamoDB backends against LocalStack."""

from __future__ import annotations

import asyncio
import uuid

import pytest

from datadna.agents.learning.learning_store import LearningStore
from datadna.agents.orchestrator.migration_orchestrator import MigrationOrchestrator
from datadna.models.mapping import ConfirmedMapping
from datadna.models.patterns import PatternCategory as P
from datadna.persistence.dynamodb_backend import DynamoDBFingerprintCatalog, DynamoDBLearnedMappingStore
from tests.integration.conftest import LOCALSTACK_URL, skip_no_localstack


@skip_no_localstack
class TestDynamoDBIntegration:
    @pytest.fixture
    def store(self, seeded_tables):
        return DynamoDBLearnedMappingStore(
            table_suffix=seeded_tables,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )

    @pytest.fixture
    def catalog(self, seeded_tables):
        return DynamoDBFingerprintCatalog(
            table_suffix=seeded_tables,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )

    def test_seeded_history(self, store):
        record = LearningStore(store=store).suggest_from_history(P.NAME_FIRST, "fname", "demo-org")
        assert (record.target_table, record.target_column) == ("hc_staff", "first_name")

    def test_seeded_history_drives_suggestions(self, store, catalog):
        org = "demo-org"
        orchestrator = MigrationOrchestrator(
            org_id=org, learning=LearningStore(store=store), catalog=catalog,
        )
        rows = [{"prov_no": "1234567893"}, {"prov_no": "9876543213"}]
        report = asyncio.run(orchestrator.analyze("tabular-file", rows))
        primary = report.suggestions[0].primary
        assert primary.target == ("hc_staff", "npi")
        assert primary.confidence >= 0.8

    def test_run_learned_end_to_end(self, store, catalog):
        org = f"it-{uuid.uuid4().hex[:8]}"
        orchestrator = MigrationOrchestrator(
            org_id=org, learning=LearningStore(store=store), catalog=catalog,
        )
        rows = [{"first_name": "Ann", "email": "ann@x.com"}, {"first_name": "Bob", "email": "bob@x.com"}]
        fp = orchestrator.analyze_source("tabular-file", None, rows)
        suggestions = asyncio.run(orchestrator.suggest_mappings(fp))
        result = asyncio.run(orchestrator.execute_migration(
            fp, [ConfirmedMapping.accept(s) for s in suggestions], rows,
        ))
        assert result.succeeded == 2
        assert len(store.list_for_org(org)) == 2
        assert [f.id for f in catalog.list(org)] == [fp.id]
        assert store.mark_run_learned(org, result.run_id) is False
