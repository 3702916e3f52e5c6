"""Build the reasoning stack (model provider, service, cache) from settings."""

from __future__ import annotations

from datadna.agents.mapper.reasoning import ModelReasoningService, ReasoningCache
from datadna.core.config import ReasoningConfig
from datadna.core.protocols import ICacheBackend, IModelProvider
from datadna.model_providers.bedrock_provider import BedrockModelProvider
from datadna.model_providers.mock_provider import MockModelProvider


def create_model_provider(config: ReasoningConfig) -> IModelProvider:
    if config.provider == "bedrock":
        return BedrockModelProvider(config)
    return MockModelProvider()


def create_reasoning(
    config: ReasoningConfig, cache_backend: ICacheBackend, model: IModelProvider | None = None
) -> tuple[ModelReasoningService | None, ReasoningCache]:
    """Reasoning service (None when disabled) and its cache."""
    cache = ReasoningCache(cache_backend, ttl=config.cache_ttl)
    if not config.enabled:
        return None, cache
    return ModelReasoningService(model or create_model_provider(config), config), cache
