"""
Prompt Template Engine and Message Formatter.

String templates (PromptTemplate) produce a StringPrompt; chat templates
(ChatPromptTemplate) produce a ChatPrompt. Chains accept either through the
same two-method surface: ``input_variables`` and ``format_prompt()``.
"""

from typing import Union

from chainsmith.prompts.chat import (
    ChatPromptTemplate,
    HistoryPlaceholder,
    LiteralMessage,
    TemplatedMessage,
    TemplateNode,
)
from chainsmith.prompts.template import (
    PromptTemplate,
    format_template,
    parse_variables,
    render_value,
)

BasePromptTemplate = Union[PromptTemplate, ChatPromptTemplate]

__all__ = [
    "BasePromptTemplate",
    "ChatPromptTemplate",
    "HistoryPlaceholder",
    "LiteralMessage",
    "PromptTemplate",
    "TemplateNode",
    "TemplatedMessage",
    "format_template",
    "parse_variables",
    "render_value",
]
