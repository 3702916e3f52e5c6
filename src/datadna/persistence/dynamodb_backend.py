"""DynamoDB backends implementing ILearnedMappingStore and IFingerprintCatalog."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from datadna.core.exceptions import LearningStoreError
from datadna.core.types import utcnow
from datadna.models.fingerprint import SourceFingerprint
from datadna.models.mapping import LearnedMapping
from datadna.models.patterns import PatternCategory

logger = logging.getLogger(__name__)

LEARNED_MAPPINGS_TABLE = "datadna-learned-mappings"
FINGERPRINTS_TABLE = "datadna-fingerprints"


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        else:
            out[k] = v
    return out


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class _DynamoDBBase:
    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    def _table(self, base: str):
        return self._ddb.Table(f"{base}{self._table_suffix}")

    def _query(self, table_base: str, pk: str, sk_prefix: str) -> list[dict[str, Any]]:
        """All items under ``pk`` whose sort key starts with ``sk_prefix``, following pages."""
        tbl = self._table(table_base)
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("PK").eq(pk) & Key("SK").begins_with(sk_prefix),
        }
        items: list[dict[str, Any]] = []
        while True:
            resp = tbl.query(**kwargs)
            items.extend(_decode_decimals(i) for i in resp.get("Items", []))
            last = resp.get("LastEvaluatedKey")
            if not last:
                return items
            kwargs["ExclusiveStartKey"] = last


def learned_mapping_item(mapping: LearnedMapping) -> dict[str, Any]:
    """DynamoDB item for a learned mapping (shared with the seed script)."""
    item: dict[str, Any] = {
        "PK": f"ORG#{mapping.org_id}",
        "SK": (
            f"MAP#{mapping.source_pattern}#{mapping.normalized_name}#"
            f"{mapping.target_table}#{mapping.target_column}"
        ),
        "orgId": mapping.org_id,
        "sourcePattern": str(mapping.source_pattern),
        "normalizedName": mapping.normalized_name,
        "targetTable": mapping.target_table,
        "targetColumn": mapping.target_column,
        "confidence": Decimal(str(round(mapping.confidence, 6))),
        "timesUsed": mapping.times_used,
        "timesSucceeded": mapping.times_succeeded,
        "version": mapping.version,
        "recentRuns": list(mapping.recent_runs),
    }
    if mapping.last_used_at is not None:
        item["lastUsedAt"] = mapping.last_used_at.isoformat()
    return item


class DynamoDBLearnedMappingStore(_DynamoDBBase):
    """Production ILearnedMappingStore.

    Layout: PK=ORG#{org_id}; SK=MAP#{pattern}#{name}#{table}#{column} for
    mappings and SK=RUN#{run_id} for learned-run markers. Writes are
    conditioned on the stored ``version``.
    """

    @staticmethod
    def _pk(org_id: str) -> str:
        return f"ORG#{org_id}"

    @staticmethod
    def _sk(pattern: PatternCategory | str, name: str, table: str = "", column: str = "") -> str:
        if not table:
            return f"MAP#{pattern}#{name}#"
        return f"MAP#{pattern}#{name}#{table}#{column}"

    @staticmethod
    def _from_item(item: dict[str, Any]) -> LearnedMapping:
        return LearnedMapping(
            org_id=item["orgId"],
            source_pattern=PatternCategory(item["sourcePattern"]),
            normalized_name=item["normalizedName"],
            target_table=item["targetTable"],
            target_column=item["targetColumn"],
            confidence=float(item["confidence"]),
            times_used=item.get("timesUsed", 0),
            times_succeeded=item.get("timesSucceeded", 0),
            last_used_at=item.get("lastUsedAt"),
            version=item.get("version", 0),
            recent_runs=item.get("recentRuns", []),
        )

    # ---- ILearnedMappingStore methods ----

    def list_for_key(
        self, org_id: str, pattern: PatternCategory, normalized_name: str
    ) -> list[LearnedMapping]:
        items = self._query(LEARNED_MAPPINGS_TABLE, self._pk(org_id), self._sk(pattern, normalized_name))
        return [self._from_item(i) for i in items]

    def get(
        self, org_id: str, pattern: PatternCategory, normalized_name: str,
        target_table: str, target_column: str,
    ) -> LearnedMapping | None:
        tbl = self._table(LEARNED_MAPPINGS_TABLE)
        resp = tbl.get_item(
            Key={
                "PK": self._pk(org_id),
                "SK": self._sk(pattern, normalized_name, target_table, target_column),
            },
            ConsistentRead=True,
        )
        item = resp.get("Item")
        return self._from_item(_decode_decimals(item)) if item else None

    def put(self, mapping: LearnedMapping, expected_version: int | None) -> bool:
        tbl = self._table(LEARNED_MAPPINGS_TABLE)
        kwargs: dict[str, Any] = {"Item": learned_mapping_item(mapping)}
        if expected_version is None:
            kwargs["ConditionExpression"] = "attribute_not_exists(SK)"
        else:
            kwargs["ConditionExpression"] = "#v = :expected"
            kwargs["ExpressionAttributeNames"] = {"#v": "version"}
            kwargs["ExpressionAttributeValues"] = {":expected": expected_version}
        try:
            tbl.put_item(**kwargs)
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise LearningStoreError(
                f"DynamoDB PUT failed for org={mapping.org_id!r}: {exc}"
            ) from exc
        return True

    def list_for_org(self, org_id: str) -> list[LearnedMapping]:
        items = self._query(LEARNED_MAPPINGS_TABLE, self._pk(org_id), "MAP#")
        return [self._from_item(i) for i in items]

    def run_learned(self, org_id: str, run_id: str) -> bool:
        tbl = self._table(LEARNED_MAPPINGS_TABLE)
        try:
            resp = tbl.get_item(
                Key={"PK": self._pk(org_id), "SK": f"RUN#{run_id}"}, ConsistentRead=True,
            )
        except ClientError as exc:
            raise LearningStoreError(
                f"DynamoDB GET failed for run marker {run_id!r}: {exc}"
            ) from exc
        return "Item" in resp

    def mark_run_learned(self, org_id: str, run_id: str) -> bool:
        tbl = self._table(LEARNED_MAPPINGS_TABLE)
        try:
            tbl.put_item(
                Item={"PK": self._pk(org_id), "SK": f"RUN#{run_id}", "learnedAt": utcnow().isoformat()},
                ConditionExpression="attribute_not_exists(SK)",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise LearningStoreError(
                f"DynamoDB PUT failed for run marker {run_id!r}: {exc}"
            ) from exc
        return True


class DynamoDBFingerprintCatalog(_DynamoDBBase):
    """Production IFingerprintCatalog: PK=ORG#{org_id}, SK=FP#{fingerprint_id}."""

    def save(self, org_id: str, fingerprint: SourceFingerprint) -> None:
        self._table(FINGERPRINTS_TABLE).put_item(Item={
            "PK": f"ORG#{org_id}",
            "SK": f"FP#{fingerprint.id}",
            "sourceKind": str(fingerprint.source_kind),
            "structuralHash": fingerprint.structural_hash,
            "payload": fingerprint.model_dump_json(),
        })

    def list(self, org_id: str) -> list[SourceFingerprint]:
        out: list[SourceFingerprint] = []
        for item in self._query(FINGERPRINTS_TABLE, f"ORG#{org_id}", "FP#"):
            try:
                out.append(SourceFingerprint.model_validate_json(item["payload"]))
            except (KeyError, ValueError) as exc:
                logger.warning("Skipping unreadable fingerprint %s: %s", item.get("SK"), exc)
        return out
