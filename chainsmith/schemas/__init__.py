"""
Value types shared across the library: messages, prompt values, documents,
and agent decisions.
"""

from chainsmith.schemas.agent import AgentAction, AgentDecision, AgentFinish, AgentStep, as_batch
from chainsmith.schemas.documents import Document
from chainsmith.schemas.messages import Message, MessageRole, get_buffer_string
from chainsmith.schemas.prompt_value import ChatPrompt, PromptValue, StringPrompt

__all__ = [
    "AgentAction",
    "AgentDecision",
    "AgentFinish",
    "AgentStep",
    "ChatPrompt",
    "Document",
    "Message",
    "MessageRole",
    "PromptValue",
    "StringPrompt",
    "as_batch",
    "get_buffer_string",
]
