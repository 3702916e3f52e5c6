"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from datadna.core.config import AppSettings
from datadna.persistence.dynamodb_backend import (
    DynamoDBFingerprintCatalog,
    DynamoDBLearnedMappingStore,
)
from datadna.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryFingerprintCatalog,
    MemoryLearnedMappingStore,
)
from datadna.persistence.redis_backend import RedisCacheBackend


def create_persistence(settings: AppSettings | None = None):
    """Create wired-up persistence backends from application settings.

    ``settings.backend == "memory"`` gives process-local dict backends;
    ``"aws"`` gives DynamoDB stores and a Redis cache.

    Returns:
        Tuple of (learned_store, fingerprint_catalog, cache).
    """
    if settings is None:
        settings = AppSettings()

    if settings.backend == "memory":
        return MemoryLearnedMappingStore(), MemoryFingerprintCatalog(), MemoryCacheBackend()

    cache = RedisCacheBackend(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        decode_responses=settings.redis.decode_responses,
    )

    learned_store = DynamoDBLearnedMappingStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    catalog = DynamoDBFingerprintCatalog(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    return learned_store, catalog, cache
