"""
Message model: the atomic unit of conversation exchanged with a model.

Messages are immutable pydantic models compared by value. ``metadata`` holds
provider-specific extras (tool call ids, tool names, raw tool call payloads)
that the core carries through without interpreting.

Example:
    >>> history = [Message.human("Hi, I'm Ana"), Message.ai("Hello Ana!")]
    >>> print(get_buffer_string(history))
    Human: Hi, I'm Ana
    AI: Hello Ana!
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Who authored a message."""

    SYSTEM = "system"
    HUMAN = "human"
    AI = "ai"
    TOOL = "tool"


# OpenAI-style wire roles, which LiteLLM accepts for every provider
_PROVIDER_ROLES = {
    MessageRole.SYSTEM: "system",
    MessageRole.HUMAN: "user",
    MessageRole.AI: "assistant",
    MessageRole.TOOL: "tool",
}

_ROLE_ALIASES = {
    "user": MessageRole.HUMAN,
    "assistant": MessageRole.AI,
}

_BUFFER_PREFIXES = {
    MessageRole.SYSTEM: "System",
    MessageRole.HUMAN: "Human",
    MessageRole.AI: "AI",
    MessageRole.TOOL: "Tool",
}


class Message(BaseModel):
    """A single chat message."""

    role: MessageRole = Field(description="Author of the message")
    content: str = Field(default="", description="Message text")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Provider extras, e.g. tool_call_id, name, tool_calls",
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def system(cls, content: str, **metadata: Any) -> Message:
        return cls(role=MessageRole.SYSTEM, content=content, metadata=metadata)

    @classmethod
    def human(cls, content: str, **metadata: Any) -> Message:
        return cls(role=MessageRole.HUMAN, content=content, metadata=metadata)

    @classmethod
    def ai(cls, content: str, **metadata: Any) -> Message:
        return cls(role=MessageRole.AI, content=content, metadata=metadata)

    @classmethod
    def tool(
        cls,
        content: str,
        tool_call_id: str | None = None,
        name: str | None = None,
    ) -> Message:
        metadata: dict[str, Any] = {}
        if tool_call_id is not None:
            metadata["tool_call_id"] = tool_call_id
        if name is not None:
            metadata["name"] = name
        return cls(role=MessageRole.TOOL, content=content, metadata=metadata)

    @classmethod
    def coerce(cls, value: Message | dict[str, Any]) -> Message:
        """
        Build a Message from either a Message or a provider-style dict.

        Accepts ``{"role": "user", "content": "..."}`` as well as the native
        role names, so history loaded from JSON round-trips cleanly.
        """
        if isinstance(value, Message):
            return value
        data = dict(value)
        role = data.get("role")
        if isinstance(role, str) and role in _ROLE_ALIASES:
            data["role"] = _ROLE_ALIASES[role]
        return cls.model_validate(data)

    def to_provider_dict(self) -> dict[str, Any]:
        """
        Convert to the OpenAI-style dict LiteLLM expects.

        Tool call bookkeeping lives in metadata and is lifted to the top level
        here: ``tool_calls`` on assistant messages, ``tool_call_id``/``name``
        on tool messages.
        """
        payload: dict[str, Any] = {
            "role": _PROVIDER_ROLES[self.role],
            "content": self.content,
        }
        if self.role is MessageRole.AI and self.metadata.get("tool_calls"):
            payload["tool_calls"] = self.metadata["tool_calls"]
            payload["content"] = self.content or None
        if self.role is MessageRole.TOOL:
            for key in ("tool_call_id", "name"):
                if key in self.metadata:
                    payload[key] = self.metadata[key]
        return payload


def get_buffer_string(
    messages: Iterable[Message],
    human_prefix: str | None = None,
    ai_prefix: str | None = None,
) -> str:
    """
    Render messages as ``"<Role>: <content>"`` lines.

    Used wherever a history has to become plain text: string prompts,
    string-valued template slots, and non-chat models.
    """
    prefixes = dict(_BUFFER_PREFIXES)
    if human_prefix is not None:
        prefixes[MessageRole.HUMAN] = human_prefix
    if ai_prefix is not None:
        prefixes[MessageRole.AI] = ai_prefix
    return "\n".join(f"{prefixes[m.role]}: {m.content}" for m in messages)
