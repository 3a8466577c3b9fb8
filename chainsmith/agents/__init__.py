"""Agents and the executor that runs them."""

from chainsmith.agents.base import PARSE_ERROR_TOOL, Agent
from chainsmith.agents.conversational import ConversationalAgent, create_prompt
from chainsmith.agents.executor import AgentExecutor, AgentState
from chainsmith.agents.tool_calling import ToolCallingAgent
from chainsmith.schemas.agent import AgentAction, AgentDecision, AgentFinish, AgentStep

__all__ = [
    "PARSE_ERROR_TOOL",
    "Agent",
    "AgentAction",
    "AgentDecision",
    "AgentExecutor",
    "AgentFinish",
    "AgentState",
    "AgentStep",
    "ConversationalAgent",
    "ToolCallingAgent",
    "create_prompt",
]
