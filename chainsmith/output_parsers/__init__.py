"""Output parsers: completion text in, structured value out."""

from chainsmith.output_parsers.agent import FORMAT_INSTRUCTIONS, AgentOutputParser
from chainsmith.output_parsers.base import (
    BaseOutputParser,
    MarkdownCodeBlockParser,
    StrOutputParser,
)

__all__ = [
    "FORMAT_INSTRUCTIONS",
    "AgentOutputParser",
    "BaseOutputParser",
    "MarkdownCodeBlockParser",
    "StrOutputParser",
]
