"""
Output parsers turn raw completion text into something structured.

Every chain runs its completion through a parser. The default
StrOutputParser is the identity, so a plain LLMChain returns exactly what the
model said.
"""

import re
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from chainsmith.errors import OutputParserError

T = TypeVar("T")

_CODE_BLOCK = re.compile(r"```[^\n`]*\n(.*?)```", re.DOTALL)


class BaseOutputParser(ABC, Generic[T]):
    """Abstract base class for output parsers."""

    @abstractmethod
    def parse(self, text: str) -> T:
        """
        Parse completion text.

        Raises:
            OutputParserError: If the text does not have the expected shape
        """
        pass


class StrOutputParser(BaseOutputParser[str]):
    """Returns the text unchanged, or stripped of surrounding whitespace."""

    def __init__(self, trim: bool = False):
        self.trim = trim

    def parse(self, text: str) -> str:
        return text.strip() if self.trim else text


class MarkdownCodeBlockParser(BaseOutputParser[str]):
    """Extracts the body of the first fenced code block."""

    def __init__(self, trim: bool = False):
        self.trim = trim

    def parse(self, text: str) -> str:
        match = _CODE_BLOCK.search(text)
        if match is None:
            raise OutputParserError(f"No fenced code block found in output: {text!r}")
        body = match.group(1)
        return body.strip() if self.trim else body
