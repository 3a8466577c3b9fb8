"""
Data models for the model interface.

These are the shapes a ChatModel hands back to the chains: the completion
text, any native tool calls the model requested, the model name the provider
reports, and token usage.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chainsmith.errors import LLMError


class TokenUsage(BaseModel):
    """Token counts reported by the provider for one or more calls."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
        )


class ToolCall(BaseModel):
    """
    A native tool call requested by the model.

    ``arguments`` is kept as the raw JSON text the provider sent, because
    that is what has to be echoed back in the follow-up assistant message.
    """

    id: str = Field(description="Provider-assigned call id")
    name: str = Field(description="Tool name as requested by the model")
    arguments: str = Field(default="{}", description="JSON-encoded arguments")

    model_config = ConfigDict(frozen=True)

    def parsed_arguments(self) -> dict[str, Any]:
        """Decode ``arguments``; malformed or non-object JSON gives ``{}``."""
        try:
            value = json.loads(self.arguments or "{}")
        except json.JSONDecodeError:
            return {}
        return value if isinstance(value, dict) else {}

    def to_provider_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class GenerateResult(BaseModel):
    """The outcome of one non-streaming model call."""

    text: str = Field(default="", description="Completion text, empty if only tools were called")
    tool_calls: list[ToolCall] = Field(default_factory=list)
    model: str = Field(default="", description="Model name reported by the provider")
    usage: TokenUsage = Field(default_factory=TokenUsage)


__all__ = ["GenerateResult", "LLMError", "TokenUsage", "ToolCall"]
