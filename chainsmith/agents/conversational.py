"""
ConversationalAgent: a JSON-speaking chat agent.

The model is told about the tools in the system message and asked to reply
with a JSON blob naming either an action or a final answer. Prompt layout:

    system:  prefix + tool catalogue ("> name: description") + format instructions
    [chat_history]         conversation so far, from memory
    human:   "{input}" + suffix
    [agent_scratchpad]     AI(log) / human("TOOL RESPONSE: ...") pairs

Works with any chat model, including ones without native tool calling.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from chainsmith.agents.base import Agent
from chainsmith.agents.prompt import DEFAULT_PREFIX, DEFAULT_SUFFIX, TOOL_RESPONSE_TEMPLATE
from chainsmith.chains.llm import LLMChain
from chainsmith.config.logging import get_logger
from chainsmith.llm.base import ChatModel
from chainsmith.llm.options import CallOptions
from chainsmith.output_parsers.agent import AgentOutputParser
from chainsmith.prompts.chat import (
    ChatPromptTemplate,
    HistoryPlaceholder,
    LiteralMessage,
    TemplatedMessage,
)
from chainsmith.prompts.template import format_template
from chainsmith.schemas.agent import AgentDecision, AgentStep
from chainsmith.schemas.messages import Message
from chainsmith.tools.base import Tool

logger = get_logger(__name__)


def _escape_braces(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


def create_prompt(
    tools: Sequence[Tool],
    prefix: str = DEFAULT_PREFIX,
    suffix: str = DEFAULT_SUFFIX,
    format_instructions: str | None = None,
) -> ChatPromptTemplate:
    """
    Build the agent prompt.

    ``{tools}`` in the prefix is replaced with the tool catalogue; a prefix
    without it gets the catalogue appended. ``{tool_names}`` in the format
    instructions is replaced with the comma-separated tool names. Both are
    plain substitutions, so the prefix may contain other braces freely.
    """
    catalogue = "\n".join(f"> {tool.name}: {tool.description}" for tool in tools)
    tool_names = ", ".join(tool.name for tool in tools)
    instructions = format_instructions or AgentOutputParser().format_instructions

    if "{tools}" in prefix:
        system = prefix.replace("{tools}", catalogue)
    else:
        system = f"{prefix}\n\n{catalogue}"
    system = f"{system}\n\n{instructions.replace('{tool_names}', tool_names)}"

    return ChatPromptTemplate.from_nodes(
        LiteralMessage.system(system),
        HistoryPlaceholder("chat_history"),
        TemplatedMessage.human("{input}" + _escape_braces(suffix)),
        HistoryPlaceholder("agent_scratchpad"),
    )


class ConversationalAgent(Agent):
    """
    Agent that plans via JSON responses parsed by AgentOutputParser.

    Args:
        model: Chat model to plan with
        tools: Tools the agent may use
        prefix: System text before the format instructions; ``{tools}`` marks
            where the tool catalogue goes
        suffix: Text appended to the human input
        output_parser: Parser for the model's responses
        options: Default call options for planning calls
    """

    def __init__(
        self,
        model: ChatModel,
        tools: Sequence[Tool],
        prefix: str = DEFAULT_PREFIX,
        suffix: str = DEFAULT_SUFFIX,
        output_parser: AgentOutputParser | None = None,
        options: CallOptions | None = None,
    ):
        super().__init__(tools)
        self.output_parser = output_parser or AgentOutputParser()
        self.prompt = create_prompt(
            self.tools, prefix, suffix, self.output_parser.format_instructions
        )
        self.llm_chain = LLMChain(self.prompt, model, options=options)

    @staticmethod
    def construct_scratchpad(steps: Sequence[AgentStep]) -> list[Message]:
        """
        Replay the steps as conversation turns.

        Parallel actions share one model response (one ``batch_id``), so
        their common log is emitted once, followed by one tool response per
        action. Identical responses from separate iterations stay separate.
        """
        messages: list[Message] = []
        previous_batch: str | None = None
        for step in steps:
            if step.action.batch_id != previous_batch:
                messages.append(Message.ai(step.action.log))
            previous_batch = step.action.batch_id
            messages.append(
                Message.human(format_template(TOOL_RESPONSE_TEMPLATE, {"observation": step.observation}))
            )
        return messages

    async def plan(
        self,
        steps: Sequence[AgentStep],
        inputs: dict[str, Any],
        options: CallOptions | None = None,
    ) -> AgentDecision:
        variables = {**inputs, "agent_scratchpad": self.construct_scratchpad(steps)}
        result = await self.llm_chain.generate(variables, options)
        logger.debug(f"Agent response: {result.text}")
        return self.output_parser.parse(result.text)
