"""
Base class for conversation memory.

Memory is an append-only record of prior turns. Chains read it once before
formatting a prompt and write to it once after a successful call. A chain
never writes to memory when the call fails or is cancelled.

Implementations are not synchronized. Sharing one memory between concurrent
invocations is the caller's responsibility.
"""

from abc import ABC, abstractmethod

from chainsmith.schemas.messages import Message, MessageRole


def _as_message(value: str | Message, role: MessageRole) -> Message:
    if isinstance(value, Message):
        return value
    return Message(role=role, content=value)


class BaseMemory(ABC):
    """
    Abstract base class for conversation memory.

    Subclasses only implement ``load``, ``add_message`` and ``clear``.
    ``save`` is defined in terms of ``add_message``.
    """

    @abstractmethod
    async def load(self) -> list[Message]:
        """
        Return the stored history, oldest first.

        The returned list is a copy; mutating it never changes the memory.
        """
        pass

    @abstractmethod
    async def add_message(self, message: Message) -> None:
        """Append a single message to the history."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Forget all stored messages."""
        pass

    async def save(self, human: str | Message, ai: str | Message) -> None:
        """
        Record one conversation turn.

        Args:
            human: The user's input, as text or a ready-made message
            ai: The model's final answer, as text or a ready-made message
        """
        await self.add_message(_as_message(human, MessageRole.HUMAN))
        await self.add_message(_as_message(ai, MessageRole.AI))
