"""
Conversation memory.

``BaseMemory`` is the interface chains depend on. ``build_memory`` turns
MemorySettings into a concrete implementation.
"""

from chainsmith.config.settings import MemorySettings
from chainsmith.memory.base import BaseMemory
from chainsmith.memory.buffer import DummyMemory, SimpleMemory, WindowBufferMemory
from chainsmith.memory.token_buffer import TokenBufferMemory


def build_memory(settings: MemorySettings) -> BaseMemory:
    """Create the memory implementation selected by ``settings.kind``."""
    if settings.kind == "none":
        return DummyMemory()
    if settings.kind == "simple":
        return SimpleMemory()
    if settings.kind == "window":
        return WindowBufferMemory(window_size=settings.window_size)
    return TokenBufferMemory(
        max_tokens=settings.max_tokens, encoding_name=settings.encoding_name
    )


__all__ = [
    "BaseMemory",
    "DummyMemory",
    "SimpleMemory",
    "TokenBufferMemory",
    "WindowBufferMemory",
    "build_memory",
]
