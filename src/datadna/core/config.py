"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class PatternConfig(BaseSettings):
    """Pattern Detector configuration."""

    model_config = {"env_prefix": "DATADNA_PATTERN_"}

    sample_size: int = 100
    sample_value_count: int = 5
    long_text_threshold: int = 50  # chars; above this a free-text column is TEXT_LONG


class FingerprintConfig(BaseSettings):
    """DNA Generator / similarity search configuration."""

    model_config = {"env_prefix": "DATADNA_DNA_"}

    similarity_threshold: float = 0.7
    max_similar: int = 5


class ScoringConfig(BaseSettings):
    """Mapping Intelligence scoring weights and floors."""

    model_config = {"env_prefix": "DATADNA_SCORING_"}

    pattern_weight: float = 0.3
    name_weight: float = 0.4
    synonym_weight: float = 0.25
    containment_weight: float = 0.1
    secondary_pattern_credit: float = 0.5
    name_similarity_floor: float = 0.5
    candidate_floor: float = 0.2
    max_alternatives: int = 3
    learned_base: float = 0.5
    learned_max_bonus: float = 0.5


class ReasoningConfig(BaseSettings):
    """External reasoning fallback configuration."""

    model_config = {"env_prefix": "DATADNA_REASONING_"}

    enabled: bool = False
    provider: Literal["mock", "bedrock"] = "mock"
    bedrock_model: str = "anthropic.claude-sonnet-4-20250514-v1:0"
    region: str = "us-east-1"
    temperature: float = 0.0
    max_tokens: int = 1024
    confidence_threshold: float = 0.6
    confidence_cap: float = 0.95
    max_in_flight: int = 4
    timeout_seconds: float = 20.0
    cache_ttl: int = 7 * 24 * 3600


class LearningConfig(BaseSettings):
    """Learning Store update policy."""

    model_config = {"env_prefix": "DATADNA_LEARNING_"}

    initial_confidence: float = 0.5
    success_step: float = 0.2  # fraction of remaining distance to 1.0
    correction_penalty: float = 0.1
    min_confidence: float = 0.05
    max_row_failure_rate: float = 0.2  # above this an accepted mapping is not a success
    max_retries: int = 5
    recent_runs_kept: int = 50  # per-record run ids that guard against double counting


class ExecutionConfig(BaseSettings):
    """Migration execution defaults."""

    model_config = {"env_prefix": "DATADNA_EXECUTION_"}

    batch_size: int = 500
    abort_on_first_error: bool = False
    learn_on_completion: bool = True
    enforce_npi_checksum: bool = False
    track_lineage: bool = True


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "DATADNA_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "DATADNA_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    decode_responses: bool = True


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "DATADNA_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    backend: Literal["memory", "aws"] = "memory"

    pattern: PatternConfig = PatternConfig()
    fingerprint: FingerprintConfig = FingerprintConfig()
    scoring: ScoringConfig = ScoringConfig()
    reasoning: ReasoningConfig = ReasoningConfig()
    learning: LearningConfig = LearningConfig()
    execution: ExecutionConfig = ExecutionConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
