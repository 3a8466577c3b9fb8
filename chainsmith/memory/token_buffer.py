"""
Token-budgeted memory.

Keeps the newest messages whose combined token count fits a budget. Token
counts come from tiktoken, the same tokenizer the rest of the package uses
for budgeting. The count is an estimate for non-OpenAI models, which is
fine for trimming history.
"""

import tiktoken

from chainsmith.config.logging import get_logger
from chainsmith.memory.buffer import SimpleMemory
from chainsmith.schemas.messages import Message

logger = get_logger(__name__)


class TokenBufferMemory(SimpleMemory):
    """
    Message buffer trimmed to a token budget.

    The oldest messages are dropped first. The newest message is always
    kept, even when it alone exceeds the budget, so a saved turn is never
    lost entirely.

    Args:
        max_tokens: Token budget for the whole history (default: 2000)
        encoding_name: tiktoken encoding name (default: "cl100k_base")
    """

    def __init__(
        self,
        max_tokens: int = 2000,
        encoding_name: str = "cl100k_base",
        messages: list[Message] | None = None,
    ):
        if max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {max_tokens}")
        self.max_tokens = max_tokens
        self.encoding_name = encoding_name
        self._encoding = tiktoken.get_encoding(encoding_name)
        super().__init__(messages)
        self._trim()

    def count_tokens(self, message: Message) -> int:
        # Role prefix is counted too, matching how history is rendered
        return len(self._encoding.encode(f"{message.role.value}: {message.content}"))

    @property
    def token_count(self) -> int:
        return sum(self.count_tokens(m) for m in self._messages)

    async def add_message(self, message: Message) -> None:
        await super().add_message(message)
        self._trim()

    def _trim(self) -> None:
        dropped = 0
        total = self.token_count
        while len(self._messages) > 1 and total > self.max_tokens:
            total -= self.count_tokens(self._messages.pop(0))
            dropped += 1
        if dropped:
            logger.debug(
                f"Token memory dropped {dropped} oldest message(s), "
                f"{total}/{self.max_tokens} tokens kept"
            )
