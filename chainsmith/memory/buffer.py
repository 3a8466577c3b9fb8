"""
In-process memory implementations.

- DummyMemory: always empty, ignores writes
- SimpleMemory: keeps every message
- WindowBufferMemory: keeps the most recent ``window_size`` messages
"""

from chainsmith.config.logging import get_logger
from chainsmith.memory.base import BaseMemory
from chainsmith.schemas.messages import Message

logger = get_logger(__name__)


class DummyMemory(BaseMemory):
    """Memory that remembers nothing. Used when a chain has no memory configured."""

    async def load(self) -> list[Message]:
        return []

    async def add_message(self, message: Message) -> None:
        pass

    async def clear(self) -> None:
        pass


class SimpleMemory(BaseMemory):
    """Unbounded message buffer."""

    def __init__(self, messages: list[Message] | None = None):
        self._messages: list[Message] = list(messages or [])

    async def load(self) -> list[Message]:
        return list(self._messages)

    async def add_message(self, message: Message) -> None:
        self._messages.append(message)

    async def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)


class WindowBufferMemory(SimpleMemory):
    """
    Message buffer that keeps only the newest messages.

    Args:
        window_size: Maximum number of messages kept (default: 10). A saved
            turn is two messages, so the default holds five exchanges.
    """

    def __init__(self, window_size: int = 10, messages: list[Message] | None = None):
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window_size = window_size
        super().__init__(messages)
        self._trim()

    async def add_message(self, message: Message) -> None:
        await super().add_message(message)
        self._trim()

    def _trim(self) -> None:
        overflow = len(self._messages) - self.window_size
        if overflow > 0:
            del self._messages[:overflow]
            logger.debug(f"Window memory dropped {overflow} oldest message(s)")
