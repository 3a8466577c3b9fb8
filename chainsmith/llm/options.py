"""
Per-call options.

CallOptions is the recognized-options set that travels with a call: sampling
parameters for the model, native tool definitions, the streaming sink, and
the agent bounds. Unrecognized keys are ignored so callers can pass options
meant for a newer version without breaking.

The streaming sink is owned by the caller. The core never accumulates deltas
in shared state; it hands each one to the sink as it arrives.

Example:
    >>> buffer = StreamBuffer()
    >>> options = CallOptions(streaming_sink=buffer, temperature=0.0)
    >>> # after the chain call, buffer.text holds the streamed answer
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Receives one text delta. May be a plain function or a coroutine function.
StreamingSink = Callable[[str], Union[Awaitable[None], None]]


async def emit(sink: StreamingSink, delta: str) -> None:
    """Deliver one delta to a sync or async sink."""
    result = sink(delta)
    if inspect.isawaitable(result):
        await result


class StreamBuffer:
    """A caller-owned sink that collects deltas in arrival order."""

    def __init__(self) -> None:
        self.deltas: list[str] = []

    def __call__(self, delta: str) -> None:
        self.deltas.append(delta)

    @property
    def text(self) -> str:
        return "".join(self.deltas)


class CallOptions(BaseModel):
    """
    Options attached to a single chain, agent or model call.

    ``None`` means "not set": the model adapter falls back to its settings,
    and ``merge`` keeps the value from the options being overlaid.
    """

    streaming_sink: StreamingSink | None = Field(
        default=None, description="Receives each text delta when streaming"
    )
    max_tokens: int | None = Field(default=None, gt=0)
    temperature: float | None = Field(default=None, ge=0.0)
    stop: list[str] | None = Field(default=None, description="Stop sequences")
    top_k: int | None = Field(default=None, gt=0)
    top_p: float | None = Field(default=None, gt=0.0, le=1.0)
    seed: int | None = None
    tools: list[dict[str, Any]] | None = Field(
        default=None, description="OpenAI-format tool definitions for native tool calling"
    )
    tool_choice: str | dict[str, Any] | None = None
    max_iterations: int | None = Field(
        default=None, ge=1, description="Overrides the agent executor's iteration bound"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Overrides the agent executor's wall-clock budget, in seconds"
    )

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    @model_validator(mode="after")
    def _check_tool_choice(self) -> CallOptions:
        if self.tool_choice is not None and not self.tools:
            raise ValueError("tool_choice requires tools")
        return self

    def merge(self, other: CallOptions | None) -> CallOptions:
        """
        Overlay ``other`` on top of these options.

        Fields that are set (not None) in ``other`` win.
        """
        if other is None:
            return self
        updates = {
            name: getattr(other, name)
            for name in type(other).model_fields
            if getattr(other, name) is not None
        }
        if not updates:
            return self
        return self.model_copy(update=updates)

    def sampling_kwargs(self) -> dict[str, Any]:
        """Provider-facing parameters that are set, ready for a completion call."""
        keys = ("max_tokens", "temperature", "stop", "top_k", "top_p", "seed", "tools", "tool_choice")
        return {key: getattr(self, key) for key in keys if getattr(self, key) is not None}
