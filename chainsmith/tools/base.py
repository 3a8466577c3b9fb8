"""
Base classes for tools.

A tool is a named capability an agent can invoke with a single text input
and get a text observation back. How the tool does its work (a local
function, an MCP server, a REST API) is invisible to the agent executor.
"""

from __future__ import annotations

import inspect
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Union

DEFAULT_PARAMETERS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "input": {"type": "string", "description": "The input to the tool"},
    },
    "required": ["input"],
}


def normalize_tool_name(name: str) -> str:
    """Canonical lookup key: models write "Web Search" for a tool named "web_search"."""
    return name.strip().lower().replace(" ", "_")


class Tool(ABC):
    """
    Abstract base class for tools.

    Subclasses provide ``name``, ``description`` and ``call``. The defaults
    for ``parameters`` and ``parse_input`` describe a single string input,
    which suits most tools.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name the model refers to."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """What the tool does and what input it expects, written for the model."""
        pass

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the tool input, used for native tool calling."""
        return DEFAULT_PARAMETERS

    @property
    def usage_limit(self) -> int | None:
        """Maximum calls per agent invocation; None means unlimited."""
        return None

    @abstractmethod
    async def call(self, input: str) -> str:
        """
        Run the tool.

        Args:
            input: Tool input text, as written by the model

        Returns:
            Observation text handed back to the model

        Raises:
            ToolError: If the tool fails. Any other exception is treated the
                same way by the agent executor.
        """
        pass

    def parse_input(self, input: str) -> str:
        """
        Unwrap ``{"input": "..."}`` payloads.

        Native tool calling always sends a JSON object; tools that take one
        string want the string.
        """
        try:
            value = json.loads(input)
        except (json.JSONDecodeError, TypeError):
            return input
        if isinstance(value, dict) and set(value) == {"input"}:
            inner = value["input"]
            return inner if isinstance(inner, str) else json.dumps(inner)
        return input

    def to_definition(self) -> dict[str, Any]:
        """
        Tool definition in the OpenAI format LiteLLM expects:
            {"type": "function", "function": {"name": ..., "description": ..., "parameters": ...}}
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


ToolFunction = Callable[[str], Union[Any, Awaitable[Any]]]


class FunctionTool(Tool):
    """
    A tool backed by a plain function or coroutine function.

    Example:
        >>> def word_count(text: str) -> int:
        ...     return len(text.split())
        >>> tool = FunctionTool("word_count", "Counts the words in the input", word_count)

    Args:
        name: Tool name
        description: Tool description shown to the model
        func: Callable taking the (unwrapped) input text. Its return value is
            converted with str(); coroutine results are awaited first.
        parameters: Optional JSON schema overriding the single-string default
        usage_limit: Optional maximum calls per agent invocation
    """

    def __init__(
        self,
        name: str,
        description: str,
        func: ToolFunction,
        parameters: dict[str, Any] | None = None,
        usage_limit: int | None = None,
    ):
        if not name.strip():
            raise ValueError("Tool name cannot be empty")
        self._name = name
        self._description = description
        self._func = func
        self._parameters = parameters
        self._usage_limit = usage_limit

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return self._parameters or DEFAULT_PARAMETERS

    @property
    def usage_limit(self) -> int | None:
        return self._usage_limit

    async def call(self, input: str) -> str:
        result = self._func(self.parse_input(input))
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)
