"""Model interface and the LiteLLM adapter."""

from chainsmith.llm.base import ChatModel
from chainsmith.llm.litellm_model import LiteLLMChatModel
from chainsmith.llm.models import GenerateResult, LLMError, TokenUsage, ToolCall
from chainsmith.llm.options import CallOptions, StreamBuffer, StreamingSink, emit

__all__ = [
    "CallOptions",
    "ChatModel",
    "GenerateResult",
    "LLMError",
    "LiteLLMChatModel",
    "StreamBuffer",
    "StreamingSink",
    "TokenUsage",
    "ToolCall",
    "emit",
]
