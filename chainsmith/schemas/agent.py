"""
Agent decision types.

An agent's plan step yields either an AgentFinish (the final answer) or a
list of AgentAction (one or more tool calls). Each executed action is
recorded with its observation as an AgentStep; the ordered list of steps is
the scratchpad for one invocation.
"""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _new_action_id() -> str:
    return uuid4().hex


class AgentAction(BaseModel):
    """A request to run one tool."""

    tool: str = Field(description="Tool name as written by the model")
    tool_input: str = Field(default="", description="Tool input text")
    log: str = Field(default="", description="Raw model output that produced this action")
    id: str = Field(
        default_factory=_new_action_id,
        description="Matches the result of this action when actions run in parallel",
    )
    batch_id: str = Field(
        default_factory=_new_action_id,
        description="Shared by every action that came from the same model response",
    )

    model_config = ConfigDict(frozen=True)


def as_batch(actions: list[AgentAction]) -> list[AgentAction]:
    """Mark actions as coming from one model response."""
    batch_id = _new_action_id()
    return [action.model_copy(update={"batch_id": batch_id}) for action in actions]


class AgentFinish(BaseModel):
    """The agent's final answer."""

    output: str
    log: str = ""

    model_config = ConfigDict(frozen=True)


class AgentStep(BaseModel):
    """An executed action and what came back from it."""

    action: AgentAction
    observation: str

    model_config = ConfigDict(frozen=True)


AgentDecision = AgentFinish | list[AgentAction]
