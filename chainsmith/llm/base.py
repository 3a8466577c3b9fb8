"""
Model interface.

Chains and agents talk to a language model only through ChatModel. The core
never imports a provider SDK; LiteLLMChatModel is one implementation, and
tests use scripted stubs.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence

from chainsmith.llm.models import GenerateResult
from chainsmith.llm.options import CallOptions
from chainsmith.schemas.messages import Message


class ChatModel(ABC):
    """Abstract base class for chat-style language models."""

    @abstractmethod
    async def generate(
        self,
        messages: Sequence[Message],
        options: CallOptions | None = None,
    ) -> GenerateResult:
        """
        Produce one completion for an ordered message sequence.

        Args:
            messages: Prompt messages, oldest first
            options: Per-call options; unset fields fall back to model defaults

        Returns:
            GenerateResult with the text and any native tool calls

        Raises:
            LLMError: If the provider call fails
        """
        pass

    @abstractmethod
    def stream(
        self,
        messages: Sequence[Message],
        options: CallOptions | None = None,
    ) -> AsyncIterator[str]:
        """
        Produce a completion as incremental text deltas.

        The iterator is exhausted at end of stream. Implementations should be
        async generators so a consumer can stop early with ``aclose()``.

        Raises:
            LLMError: If the provider call fails, on first iteration or mid-stream
        """
        pass
