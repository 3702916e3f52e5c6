"""Bedrock model provider via the bedrock-runtime Converse API."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import boto3

from datadna.core.config import ReasoningConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BedrockModelProvider:
    """IModelProvider backed by ``bedrock-runtime.converse``."""

    def __init__(self, config: ReasoningConfig | None = None, client: Any = None) -> None:
        self._config = config or ReasoningConfig()
        self._client = client or boto3.client("bedrock-runtime", region_name=self._config.region)

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        system = [{"text": m["content"]} for m in messages if m.get("role") == "system"]
        turns = [
            {"role": m["role"], "content": [{"text": m["content"]}]}
            for m in messages
            if m.get("role") in ("user", "assistant")
        ]
        request: dict[str, Any] = {
            "modelId": kwargs.get("model_id", self._config.bedrock_model),
            "messages": turns,
            "inferenceConfig": {
                "maxTokens": kwargs.get("max_tokens", self._config.max_tokens),
                "temperature": kwargs.get("temperature", self._config.temperature),
            },
        }
        if system:
            request["system"] = system
        resp = self._client.converse(**request)
        usage = resp.get("usage", {})
        logger.debug("Bedrock converse: %s in / %s out tokens",
                     usage.get("inputTokens"), usage.get("outputTokens"))
        blocks = resp.get("output", {}).get("message", {}).get("content", [])
        return "".join(b.get("text", "") for b in blocks)

    def structured_output(
        self, messages: list[dict[str, str]], response_model: type[T], **kwargs: Any
    ) -> T:
        return response_model.model_validate_json(self.chat(messages, **kwargs))  # type: ignore[attr-defined]
