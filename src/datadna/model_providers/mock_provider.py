"""Mock model provider for local development and testing.

Returns canned responses. No real LLM calls.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

T = TypeVar("T")


class MockModelProvider:
    """IModelProvider implementation that returns deterministic mock responses.

    The default reply is a well-formed mapping answer naming no known
    destination, so an unconfigured mock never invents a confident target.
    """

    DEFAULT_RESPONSE = json.dumps({
        "suggested_table": "unknown",
        "suggested_column": "unknown",
        "confidence": 0.0,
        "rationale": "mock provider has no canned answer for this column",
        "transformation": None,
    })

    def __init__(self, default_response: str | None = None) -> None:
        self._default_response = default_response or self.DEFAULT_RESPONSE
        self._canned_responses: dict[str, str] = {}
        self.calls: list[list[dict[str, str]]] = []

    def set_response(self, prompt_contains: str, response: str | dict[str, Any]) -> None:
        """Register a canned response for prompts containing a keyword."""
        if isinstance(response, dict):
            response = json.dumps(response)
        self._canned_responses[prompt_contains] = response

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        self.calls.append(messages)
        last_content = messages[-1].get("content", "") if messages else ""
        for keyword, response in self._canned_responses.items():
            if keyword in last_content:
                return response
        return self._default_response

    def structured_output(
        self, messages: list[dict[str, str]], response_model: type[T], **kwargs: Any
    ) -> T:
        """Validate the chat reply into ``response_model``."""
        return response_model.model_validate_json(self.chat(messages, **kwargs))  # type: ignore[attr-defined]
