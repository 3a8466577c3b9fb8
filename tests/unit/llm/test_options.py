"""
Unit tests for per-call options.

Tests cover:
- Unknown option keys are ignored
- tool_choice validation
- merge() precedence
- sampling_kwargs() filtering
- emit() with sync and async sinks
"""

import pytest
from pydantic import ValidationError

from chainsmith.llm.models import TokenUsage
from chainsmith.llm.options import CallOptions, StreamBuffer, emit


class TestCallOptions:
    """Tests for CallOptions."""

    def test_unknown_keys_are_ignored(self):
        options = CallOptions(temperature=0.5, frequency_penalty=1.0)
        assert options.temperature == 0.5
        assert not hasattr(options, "frequency_penalty")

    def test_tool_choice_requires_tools(self):
        with pytest.raises(ValidationError):
            CallOptions(tool_choice="auto")

    def test_negative_temperature_rejected(self):
        with pytest.raises(ValidationError):
            CallOptions(temperature=-1.0)

    def test_merge_set_fields_win(self):
        base = CallOptions(temperature=0.2, max_tokens=100)
        merged = base.merge(CallOptions(temperature=0.9))
        assert merged.temperature == 0.9
        assert merged.max_tokens == 100

    def test_merge_none_returns_self(self):
        base = CallOptions(temperature=0.2)
        assert base.merge(None) is base
        assert base.merge(CallOptions()) is base

    def test_sampling_kwargs_only_set_fields(self):
        options = CallOptions(temperature=0.0, top_k=5, max_iterations=3, streaming_sink=print)
        assert options.sampling_kwargs() == {"temperature": 0.0, "top_k": 5}


class TestEmit:
    """Tests for delivering deltas to sinks."""

    @pytest.mark.asyncio
    async def test_sync_sink(self):
        buffer = StreamBuffer()
        await emit(buffer, "Hel")
        await emit(buffer, "lo")
        assert buffer.text == "Hello"
        assert buffer.deltas == ["Hel", "lo"]

    @pytest.mark.asyncio
    async def test_async_sink(self):
        received = []

        async def sink(delta):
            received.append(delta)

        await emit(sink, "x")
        assert received == ["x"]


class TestTokenUsage:
    """Tests for TokenUsage arithmetic."""

    def test_add(self):
        total = TokenUsage(prompt_tokens=10, completion_tokens=5) + TokenUsage(prompt_tokens=1, completion_tokens=2)
        assert total.prompt_tokens == 11
        assert total.total_tokens == 18
