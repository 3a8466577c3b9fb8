"""
ToolCallingAgent: planning through the provider's native tool calling.

Tool schemas (``Tool.parameters``) are sent as call options. When the model
responds with tool calls, each becomes an AgentAction carrying the
provider's call id; a plain text response is the final answer.

The scratchpad is replayed the way providers expect it: the assistant
message that carried the tool calls, then one tool message per call,
matched by id. Each action's ``log`` holds that assistant message as JSON,
so the replay needs no state outside the steps themselves.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from chainsmith.agents.base import Agent
from chainsmith.agents.prompt import DEFAULT_TOOL_CALLING_PREFIX
from chainsmith.chains.llm import LLMChain
from chainsmith.config.logging import get_logger
from chainsmith.llm.base import ChatModel
from chainsmith.llm.models import GenerateResult
from chainsmith.llm.options import CallOptions
from chainsmith.prompts.chat import (
    ChatPromptTemplate,
    HistoryPlaceholder,
    LiteralMessage,
    TemplatedMessage,
)
from chainsmith.schemas.agent import AgentAction, AgentDecision, AgentFinish, AgentStep, as_batch
from chainsmith.schemas.messages import Message
from chainsmith.tools.base import Tool

logger = get_logger(__name__)


def _assistant_log(result: GenerateResult) -> str:
    return json.dumps(
        {
            "content": result.text,
            "tool_calls": [call.to_provider_dict() for call in result.tool_calls],
        }
    )


def _decode_log(log: str) -> dict[str, Any] | None:
    try:
        value = json.loads(log)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(value, dict) and isinstance(value.get("tool_calls"), list):
        return value
    return None


class ToolCallingAgent(Agent):
    """
    Agent for models with native tool calling (OpenAI, Anthropic, and others via LiteLLM).

    Args:
        model: Chat model with tool calling support
        tools: Tools the agent may use
        prefix: System message
        options: Default call options for planning calls
    """

    def __init__(
        self,
        model: ChatModel,
        tools: Sequence[Tool],
        prefix: str = DEFAULT_TOOL_CALLING_PREFIX,
        options: CallOptions | None = None,
    ):
        super().__init__(tools)
        self.prompt = ChatPromptTemplate.from_nodes(
            LiteralMessage.system(prefix),
            HistoryPlaceholder("chat_history"),
            TemplatedMessage.human("{input}"),
            HistoryPlaceholder("agent_scratchpad"),
        )
        tool_options = CallOptions(tools=[tool.to_definition() for tool in self.tools] or None)
        self.llm_chain = LLMChain(self.prompt, model, options=tool_options.merge(options))

    @staticmethod
    def construct_scratchpad(steps: Sequence[AgentStep]) -> list[Message]:
        messages: list[Message] = []
        previous_batch: str | None = None
        for step in steps:
            action = step.action
            assistant = _decode_log(action.log)
            if assistant is None:
                # Not produced by a tool call (e.g. a recorded parse failure)
                messages.append(Message.ai(action.log))
                messages.append(Message.human(step.observation))
                previous_batch = None
                continue
            if action.batch_id != previous_batch:
                messages.append(Message.ai(assistant["content"] or "", tool_calls=assistant["tool_calls"]))
                previous_batch = action.batch_id
            messages.append(Message.tool(step.observation, tool_call_id=action.id, name=action.tool))
        return messages

    async def plan(
        self,
        steps: Sequence[AgentStep],
        inputs: dict[str, Any],
        options: CallOptions | None = None,
    ) -> AgentDecision:
        variables = {**inputs, "agent_scratchpad": self.construct_scratchpad(steps)}
        result = await self.llm_chain.generate(variables, options)

        if not result.tool_calls:
            return AgentFinish(output=result.text, log=result.text)

        log = _assistant_log(result)
        logger.debug(f"Model requested {len(result.tool_calls)} tool call(s)")
        return as_batch(
            [
                AgentAction(tool=call.name, tool_input=call.arguments, log=log, id=call.id)
                for call in result.tool_calls
            ]
        )
