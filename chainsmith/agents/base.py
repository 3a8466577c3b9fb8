"""
Agent base class.

An agent decides what to do next. Given the steps taken so far in this
invocation and the caller's inputs, ``plan`` returns either a final answer
or one or more tool actions. It never runs tools itself; that is the
executor's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from chainsmith.llm.options import CallOptions
from chainsmith.schemas.agent import AgentDecision, AgentStep
from chainsmith.tools.base import Tool, normalize_tool_name

# Pseudo tool name recorded in the scratchpad for unparsable responses
PARSE_ERROR_TOOL = "_parse_error"


class Agent(ABC):
    """Abstract base class for agents."""

    def __init__(self, tools: Sequence[Tool]):
        self._tools: tuple[Tool, ...] = tuple(tools)
        self._tools_by_name: dict[str, Tool] = {}
        for tool in self._tools:
            key = normalize_tool_name(tool.name)
            if key in self._tools_by_name:
                raise ValueError(f"Duplicate tool name: {tool.name!r}")
            self._tools_by_name[key] = tool

    @property
    def tools(self) -> tuple[Tool, ...]:
        return self._tools

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self._tools]

    @property
    def input_keys(self) -> tuple[str, ...]:
        """Caller-supplied variables; ``chat_history`` is filled by the executor."""
        return ("input",)

    def get_tool(self, name: str) -> Tool | None:
        """Look up a tool, tolerating case and spaces-for-underscores."""
        return self._tools_by_name.get(normalize_tool_name(name))

    @abstractmethod
    async def plan(
        self,
        steps: Sequence[AgentStep],
        inputs: dict[str, Any],
        options: CallOptions | None = None,
    ) -> AgentDecision:
        """
        Decide the next move.

        Args:
            steps: Actions taken so far in this invocation, with observations
            inputs: Caller inputs plus ``chat_history``
            options: Call options for the model

        Returns:
            AgentFinish, or a non-empty list of AgentAction

        Raises:
            UnparsableOutput: If the model's response cannot be understood
            LLMError: If the model call fails
        """
        pass
