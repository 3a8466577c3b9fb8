"""
Shared test doubles.

ScriptedChatModel replaces a real provider in chain and agent tests: it
returns canned responses in order and records every call it receives.
"""

from collections.abc import AsyncIterator, Sequence

import pytest

from chainsmith.llm.base import ChatModel
from chainsmith.llm.models import GenerateResult
from chainsmith.llm.options import CallOptions
from chainsmith.schemas.messages import Message


class ScriptedChatModel(ChatModel):
    """
    Chat model stub driven by a script.

    Each ``generate`` call consumes the next entry of ``responses``: a
    string becomes the completion text, a GenerateResult is returned as is,
    and an exception is raised. The last entry repeats once the script runs
    out. ``stream`` yields ``deltas``.
    """

    def __init__(
        self,
        responses: Sequence[str | GenerateResult | Exception] = ("",),
        deltas: Sequence[str] = (),
    ):
        self.responses = list(responses)
        self.deltas = list(deltas)
        self.calls: list[tuple[list[Message], CallOptions | None]] = []
        self.stream_calls: list[tuple[list[Message], CallOptions | None]] = []
        self.stream_closed = False
        self.deltas_sent = 0

    async def generate(
        self,
        messages: Sequence[Message],
        options: CallOptions | None = None,
    ) -> GenerateResult:
        self.calls.append((list(messages), options))
        index = min(len(self.calls), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, GenerateResult):
            return response
        return GenerateResult(text=response, model="scripted")

    async def stream(
        self,
        messages: Sequence[Message],
        options: CallOptions | None = None,
    ) -> AsyncIterator[str]:
        self.stream_calls.append((list(messages), options))
        try:
            for delta in self.deltas:
                self.deltas_sent += 1
                yield delta
        finally:
            self.stream_closed = True

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def last_messages(self) -> list[Message]:
        return self.calls[-1][0]


@pytest.fixture
def make_model():
    """Factory for ScriptedChatModel instances."""
    return ScriptedChatModel
