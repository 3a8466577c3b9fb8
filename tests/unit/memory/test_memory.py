"""
Unit tests for conversation memory.

Tests cover:
- Save/load round trip and load returning a copy
- DummyMemory ignoring writes
- Window trimming
- Token budget trimming (with a fake tokenizer, no encoding download)
- build_memory() selection from settings
"""

from unittest.mock import MagicMock, patch

import pytest

from chainsmith.config.settings import MemorySettings
from chainsmith.memory import (
    DummyMemory,
    SimpleMemory,
    TokenBufferMemory,
    WindowBufferMemory,
    build_memory,
)
from chainsmith.schemas.messages import Message


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def whitespace_encoding():
    """Patch tiktoken so that one token == one whitespace-separated word."""
    encoding = MagicMock()
    encoding.encode.side_effect = lambda text: text.split()
    with patch("chainsmith.memory.token_buffer.tiktoken.get_encoding", return_value=encoding) as mock_get:
        yield mock_get


class TestSimpleMemory:
    """Tests for SimpleMemory."""

    @pytest.mark.asyncio
    async def test_save_then_load(self):
        memory = SimpleMemory()
        await memory.save("Hi, I'm Ana", "Hello Ana!")

        history = await memory.load()

        assert history == [Message.human("Hi, I'm Ana"), Message.ai("Hello Ana!")]

    @pytest.mark.asyncio
    async def test_save_accepts_messages(self):
        memory = SimpleMemory()
        await memory.save(Message.human("q"), Message.ai("a", source="cache"))
        history = await memory.load()
        assert history[1].metadata == {"source": "cache"}

    @pytest.mark.asyncio
    async def test_load_returns_copy(self):
        memory = SimpleMemory()
        await memory.save("q", "a")

        history = await memory.load()
        history.append(Message.human("sneaky"))

        assert len(await memory.load()) == 2

    @pytest.mark.asyncio
    async def test_clear(self):
        memory = SimpleMemory([Message.human("x")])
        await memory.clear()
        assert await memory.load() == []
        assert len(memory) == 0


class TestDummyMemory:
    """Tests for DummyMemory."""

    @pytest.mark.asyncio
    async def test_ignores_writes(self):
        memory = DummyMemory()
        await memory.save("q", "a")
        assert await memory.load() == []


class TestWindowBufferMemory:
    """Tests for WindowBufferMemory."""

    @pytest.mark.asyncio
    async def test_keeps_newest_messages(self):
        memory = WindowBufferMemory(window_size=4)
        for i in range(3):
            await memory.save(f"q{i}", f"a{i}")

        history = await memory.load()

        assert [m.content for m in history] == ["q1", "a1", "q2", "a2"]

    def test_initial_messages_are_trimmed(self):
        memory = WindowBufferMemory(window_size=2, messages=[Message.human(str(i)) for i in range(5)])
        assert len(memory) == 2

    def test_rejects_empty_window(self):
        with pytest.raises(ValueError):
            WindowBufferMemory(window_size=0)


class TestTokenBufferMemory:
    """Tests for TokenBufferMemory."""

    def test_loads_requested_encoding(self, whitespace_encoding):
        TokenBufferMemory(encoding_name="o200k_base")
        whitespace_encoding.assert_called_once_with("o200k_base")

    def test_count_includes_role(self, whitespace_encoding):
        memory = TokenBufferMemory()
        # "human: one two three"
        assert memory.count_tokens(Message.human("one two three")) == 4

    @pytest.mark.asyncio
    async def test_drops_oldest_over_budget(self, whitespace_encoding):
        memory = TokenBufferMemory(max_tokens=6)
        await memory.save("first question", "first answer")  # 3 + 3 tokens
        await memory.save("second question", "second answer")

        history = await memory.load()

        assert [m.content for m in history] == ["second question", "second answer"]
        assert memory.token_count == 6

    @pytest.mark.asyncio
    async def test_newest_message_always_kept(self, whitespace_encoding):
        memory = TokenBufferMemory(max_tokens=2)
        await memory.add_message(Message.ai("a very long answer indeed"))

        history = await memory.load()

        assert len(history) == 1
        assert memory.token_count > memory.max_tokens


class TestBuildMemory:
    """Tests for build_memory()."""

    def test_none(self):
        assert isinstance(build_memory(MemorySettings(kind="none")), DummyMemory)

    def test_simple(self):
        memory = build_memory(MemorySettings(kind="simple"))
        assert type(memory) is SimpleMemory

    def test_window(self):
        memory = build_memory(MemorySettings(kind="window", window_size=6))
        assert isinstance(memory, WindowBufferMemory)
        assert memory.window_size == 6

    def test_token(self, whitespace_encoding):
        memory = build_memory(MemorySettings(kind="token", max_tokens=100, encoding_name="cl100k_base"))
        assert isinstance(memory, TokenBufferMemory)
        assert memory.max_tokens == 100
