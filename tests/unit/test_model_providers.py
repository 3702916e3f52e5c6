"""Tests for the model providers and the reasoning factory."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from datadna.agents.mapper.reasoning import ModelReasoningService
from datadna.core.config import ReasoningConfig
from datadna.model_providers.bedrock_provider import BedrockModelProvider
from datadna.model_providers.factory import create_model_provider, create_reasoning
from datadna.model_providers.mock_provider import MockModelProvider
from datadna.models.mapping import ReasoningResponse
from tests.fakes import MemoryCacheBackend


class StubBedrockClient:
    def __init__(self, text: str) -> None:
        self.text = text
        self.requests: list[dict] = []

    def converse(self, **request):
        self.requests.append(request)
        return {
            "output": {"message": {"role": "assistant", "content": [{"text": self.text}]}},
            "usage": {"inputTokens": 10, "outputTokens": 5},
        }


class TestMockProvider:
    def test_default_answer_names_no_target(self):
        reply = MockModelProvider().structured_output(
            [{"role": "user", "content": "anything"}], ReasoningResponse
        )
        assert reply.suggested_table == "unknown"
        assert reply.confidence == 0.0

    def test_canned_response_by_keyword(self):
        provider = MockModelProvider()
        provider.set_response("misc_info", {
            "suggestedTable": "hc_staff", "suggestedColumn": "employment_status", "confidence": 0.8,
        })
        reply = provider.structured_output(
            [{"role": "system", "content": "s"}, {"role": "user", "content": "column misc_info"}],
            ReasoningResponse,
        )
        assert (reply.suggested_table, reply.suggested_column) == ("hc_staff", "employment_status")
        assert len(provider.calls) == 1

    def test_malformed_reply_raises(self):
        provider = MockModelProvider(default_response="not json")
        with pytest.raises(ValidationError):
            provider.structured_output([{"role": "user", "content": "x"}], ReasoningResponse)


class TestBedrockProvider:
    def test_converse_request_shape(self):
        client = StubBedrockClient('{"suggested_table": "hc_staff", "suggested_column": "npi"}')
        provider = BedrockModelProvider(ReasoningConfig(max_tokens=256), client=client)
        reply = provider.structured_output(
            [{"role": "system", "content": "be brief"}, {"role": "user", "content": "prov_no"}],
            ReasoningResponse,
        )
        assert reply.suggested_column == "npi"
        request = client.requests[0]
        assert request["system"] == [{"text": "be brief"}]
        assert request["messages"] == [{"role": "user", "content": [{"text": "prov_no"}]}]
        assert request["inferenceConfig"]["maxTokens"] == 256
        assert request["modelId"] == ReasoningConfig().bedrock_model


class TestFactory:
    def test_provider_selection(self):
        assert isinstance(create_model_provider(ReasoningConfig()), MockModelProvider)

    def test_disabled_reasoning_still_has_cache(self):
        service, cache = create_reasoning(ReasoningConfig(enabled=False), MemoryCacheBackend())
        assert service is None
        assert cache is not None

    def test_enabled_reasoning(self):
        service, _ = create_reasoning(
            ReasoningConfig(enabled=True), MemoryCacheBackend(), model=MockModelProvider()
        )
        assert isinstance(service, ModelReasoningService)
