"""Create the DataDNA DynamoDB tables and seed demo learned mappings.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import boto3

from datadna.models.mapping import LearnedMapping
from datadna.persistence.dynamodb_backend import (
    FINGERPRINTS_TABLE,
    LEARNED_MAPPINGS_TABLE,
    learned_mapping_item,
)

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": LEARNED_MAPPINGS_TABLE},
    {"name": FINGERPRINTS_TABLE},
]

SEED_PATH = Path(__file__).resolve().parent.parent / "config" / "learned_mappings_seed.json"


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create both DynamoDB tables. Skips if table already exists."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def load_seed_mappings(path: Path = SEED_PATH) -> list[LearnedMapping]:
    data = json.loads(path.read_text())
    org_id = data["org_id"]
    return [LearnedMapping(org_id=org_id, version=1, **m) for m in data["mappings"]]


def seed_learned_mappings(ddb: Any, suffix: str = "") -> int:
    """Write the demo organization's learned mappings; returns the count."""
    mappings = load_seed_mappings()
    tbl = ddb.Table(f"{LEARNED_MAPPINGS_TABLE}{suffix}")
    with tbl.batch_writer() as batch:
        for mapping in mappings:
            batch.put_item(Item=learned_mapping_item(mapping))
    print(f"  Seeded {len(mappings)} learned mappings for {mappings[0].org_id if mappings else '-'}")
    return len(mappings)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for DataDNA")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding data...")
    seed_learned_mappings(ddb, suffix=args.table_suffix)

    print("Done!")


if __name__ == "__main__":
    main()
