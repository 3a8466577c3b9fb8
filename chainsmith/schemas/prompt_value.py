"""
Prompt values: what a template produces and what a chain hands to a model.

A chain never looks at which kind of template built its prompt; it only
calls ``to_messages()`` (chat models) or ``to_string()`` (completion-style
rendering and logging).
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from chainsmith.schemas.messages import Message, get_buffer_string


class StringPrompt(BaseModel):
    """A prompt that is a single block of text."""

    kind: Literal["string"] = "string"
    text: str

    model_config = ConfigDict(frozen=True)

    def to_string(self) -> str:
        return self.text

    def to_messages(self) -> list[Message]:
        # Plain text prompts are sent to chat models as one human turn
        return [Message.human(self.text)]


class ChatPrompt(BaseModel):
    """A prompt that is an ordered sequence of messages."""

    kind: Literal["chat"] = "chat"
    messages: tuple[Message, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    def to_string(self) -> str:
        return get_buffer_string(self.messages)

    def to_messages(self) -> list[Message]:
        return list(self.messages)


PromptValue = Union[StringPrompt, ChatPrompt]
