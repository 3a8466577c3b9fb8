"""
Agent executor: the think-act-observe loop.

State machine for one invocation:

    START → THINKING → (ACTING → OBSERVING → THINKING)* → DONE | FAILED

- THINKING: check the bounds, then ask the agent to plan. A final answer
  moves to DONE. Tool actions move to ACTING. An unparsable response is fed
  back as a corrective observation and the loop thinks again.
- ACTING: run the requested tools. Several actions from one response run
  concurrently.
- OBSERVING: append (action, observation) to the scratchpad, in the order
  the actions were requested.

Design decisions:
- Tool problems are observations, not exceptions. An unknown tool, an
  exhausted usage limit, or a tool that raises all produce text the model
  can react to, e.g. "Error: Tool 'search' failed: timeout". Only when
  failures keep happening back to back does the executor give up with
  ToolErrorLimitExceeded.
- Bounds (iterations, wall-clock) are checked at the top of THINKING only,
  never while a tool runs, so a tool's side effects are never cut in half.
- The scratchpad is local to one ``invoke`` call. One executor can serve
  concurrent invocations.
- Memory is written once, after DONE. A failed or cancelled invocation
  saves nothing.
"""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from collections.abc import Sequence
from enum import Enum
from typing import Any

from chainsmith.agents.base import PARSE_ERROR_TOOL, Agent
from chainsmith.agents.prompt import (
    INVALID_FORMAT_OBSERVATION,
    TOOL_ERROR_OBSERVATION,
    TOOL_NOT_FOUND_OBSERVATION,
    USAGE_LIMIT_OBSERVATION,
)
from chainsmith.chains.base import Chain
from chainsmith.config.logging import get_logger
from chainsmith.config.settings import AgentSettings
from chainsmith.errors import (
    ChainError,
    MaxIterationsExceeded,
    ParseError,
    StreamingSinkError,
    TimeoutExceeded,
    ToolErrorLimitExceeded,
    UnparsableOutput,
)
from chainsmith.llm.options import CallOptions, emit
from chainsmith.memory.base import BaseMemory
from chainsmith.prompts.template import render_value
from chainsmith.schemas.agent import AgentAction, AgentFinish, AgentStep
from chainsmith.tools.base import Tool

logger = get_logger(__name__)


class AgentState(str, Enum):
    """Where an invocation is in the think-act-observe loop."""

    START = "start"
    THINKING = "thinking"
    ACTING = "acting"
    OBSERVING = "observing"
    DONE = "done"
    FAILED = "failed"


class _Run:
    """Mutable bookkeeping for one invocation."""

    def __init__(self) -> None:
        self.state = AgentState.START
        self.steps: list[AgentStep] = []
        self.iterations = 0
        self.parse_failures = 0
        self.tool_failures = 0
        self.usage: Counter[str] = Counter()
        self.started = time.monotonic()

    def transition(self, new_state: AgentState) -> None:
        logger.debug(f"Agent state: {self.state.value} -> {new_state.value}")
        self.state = new_state

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started


class AgentExecutor(Chain):
    """
    Runs an agent until it gives a final answer or a bound is hit.

    Args:
        agent: The planner
        memory: Optional conversation memory. History is passed to the agent
            as ``chat_history`` and the (input, answer) turn is saved on success.
        max_iterations: Maximum planning calls per invocation (default: 10).
            None disables the bound.
        max_execution_time: Wall-clock budget in seconds (default: None)
        max_parse_retries: Consecutive unparsable responses tolerated
            (default: 2). One more raises ParseError.
        max_consecutive_tool_errors: Length of the failed tool call streak
            that stops the run with ToolErrorLimitExceeded (default: 3). With
            3, two failures in a row are tolerated and the third raises. None
            disables the bound.
        return_intermediate_steps: Also return the scratchpad under
            ``intermediate_steps``
        input_key: Variable holding the user's request (default: "input")
        output_key: Key of the final answer (default: "output")

    Per-call ``CallOptions.max_iterations`` and ``CallOptions.timeout``
    override the iteration and wall-clock bounds.
    """

    def __init__(
        self,
        agent: Agent,
        memory: BaseMemory | None = None,
        max_iterations: int | None = 10,
        max_execution_time: float | None = None,
        max_parse_retries: int = 2,
        max_consecutive_tool_errors: int | None = 3,
        return_intermediate_steps: bool = False,
        input_key: str = "input",
        output_key: str = "output",
    ):
        self.agent = agent
        self.memory = memory
        self.max_iterations = max_iterations
        self.max_execution_time = max_execution_time
        self.max_parse_retries = max_parse_retries
        self.max_consecutive_tool_errors = max_consecutive_tool_errors
        self.return_intermediate_steps = return_intermediate_steps
        self.input_key = input_key
        self._output_key = output_key

    @classmethod
    def from_settings(
        cls,
        agent: Agent,
        settings: AgentSettings,
        memory: BaseMemory | None = None,
        **kwargs: Any,
    ) -> AgentExecutor:
        return cls(
            agent,
            memory=memory,
            max_iterations=settings.max_iterations,
            max_execution_time=settings.max_execution_time,
            max_parse_retries=settings.max_parse_retries,
            max_consecutive_tool_errors=settings.max_consecutive_tool_errors,
            **kwargs,
        )

    @property
    def input_keys(self) -> tuple[str, ...]:
        keys = list(self.agent.input_keys)
        if self.input_key not in keys:
            keys.insert(0, self.input_key)
        return tuple(keys)

    @property
    def output_keys(self) -> tuple[str, ...]:
        if self.return_intermediate_steps:
            return (self._output_key, "intermediate_steps")
        return (self._output_key,)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _call(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        max_iterations = self.max_iterations
        budget = self.max_execution_time
        sink = None
        plan_options = options
        if options is not None:
            if options.max_iterations is not None:
                max_iterations = options.max_iterations
            if options.timeout is not None:
                budget = options.timeout
            sink = options.streaming_sink
            if sink is not None:
                # Planning responses are JSON and tool calls, not answer text
                plan_options = options.model_copy(update={"streaming_sink": None})

        variables = await self._prepare_variables(inputs)
        run = _Run()
        run.transition(AgentState.THINKING)

        while True:
            self._check_bounds(run, max_iterations, budget)
            run.iterations += 1

            try:
                decision = await self.agent.plan(list(run.steps), variables, plan_options)
            except UnparsableOutput as e:
                self._record_parse_failure(run, e)
                continue
            run.parse_failures = 0

            if isinstance(decision, AgentFinish):
                return await self._finish(run, decision, inputs, sink)

            run.transition(AgentState.ACTING)
            observations = await self._act(run, decision)

            run.transition(AgentState.OBSERVING)
            self._observe(run, decision, observations)
            run.transition(AgentState.THINKING)

    async def _prepare_variables(self, inputs: dict[str, Any]) -> dict[str, Any]:
        if self.memory is None:
            return {"chat_history": [], **inputs}
        if "chat_history" in inputs:
            raise ChainError(
                "Input 'chat_history' is reserved for conversation history and is filled from memory"
            )
        return {**inputs, "chat_history": await self.memory.load()}

    def _fail(self, run: _Run, error: Exception) -> Exception:
        run.transition(AgentState.FAILED)
        logger.warning(f"Agent failed after {run.iterations} iteration(s): {error}")
        return error

    def _check_bounds(self, run: _Run, max_iterations: int | None, budget: float | None) -> None:
        if max_iterations is not None and run.iterations >= max_iterations:
            raise self._fail(
                run,
                MaxIterationsExceeded(
                    f"Agent stopped after {run.iterations} iterations without a final answer",
                    steps=run.steps,
                ),
            )
        if budget is not None and run.elapsed >= budget:
            raise self._fail(
                run,
                TimeoutExceeded(
                    f"Agent exceeded its {budget}s time budget after {run.iterations} iterations",
                    steps=run.steps,
                ),
            )

    def _record_parse_failure(self, run: _Run, error: UnparsableOutput) -> None:
        run.parse_failures += 1
        logger.warning(
            f"Unparsable agent output ({run.parse_failures}/{self.max_parse_retries + 1}): "
            f"{error.raw_text[:200]!r}"
        )
        if run.parse_failures > self.max_parse_retries:
            raise self._fail(
                run,
                ParseError(
                    f"Agent output could not be parsed {run.parse_failures} times in a row",
                    steps=run.steps,
                    cause=error,
                ),
            )
        run.steps.append(
            AgentStep(
                action=AgentAction(tool=PARSE_ERROR_TOOL, log=error.raw_text),
                observation=INVALID_FORMAT_OBSERVATION,
            )
        )

    async def _finish(
        self,
        run: _Run,
        decision: AgentFinish,
        inputs: dict[str, Any],
        sink: Any,
    ) -> dict[str, Any]:
        if sink is not None:
            try:
                await emit(sink, decision.output)
            except Exception as e:
                raise StreamingSinkError(f"Streaming sink failed: {e}", cause=e) from e

        run.transition(AgentState.DONE)
        logger.debug(f"Agent finished after {run.iterations} iteration(s): {decision.output}")

        if self.memory is not None:
            await self.memory.save(render_value(inputs[self.input_key]), decision.output)

        outputs: dict[str, Any] = {self._output_key: decision.output}
        if self.return_intermediate_steps:
            outputs["intermediate_steps"] = list(run.steps)
        return outputs

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def _act(self, run: _Run, actions: Sequence[AgentAction]) -> dict[str, tuple[str, bool | None]]:
        """
        Run the actions concurrently.

        Returns:
            Mapping of action id to (observation, failed). ``failed`` is None
            for actions that never reached a tool.
        """
        pending: list[tuple[AgentAction, Tool]] = []
        observations: dict[str, tuple[str, bool | None]] = {}

        # Lookups and usage limits are resolved in request order before anything runs
        for action in actions:
            logger.debug(f"Agent action: {action.tool} input: {action.tool_input}")
            tool = self.agent.get_tool(action.tool)
            if tool is None:
                logger.debug(f"Tool {action.tool} not found")
                observations[action.id] = (
                    TOOL_NOT_FOUND_OBSERVATION.format(
                        tool=action.tool, tool_names=", ".join(self.agent.tool_names)
                    ),
                    None,
                )
                continue
            if tool.usage_limit is not None:
                run.usage[tool.name] += 1
                if run.usage[tool.name] > tool.usage_limit:
                    logger.debug(f"Tool {tool.name} usage limit ({tool.usage_limit}) reached")
                    observations[action.id] = (USAGE_LIMIT_OBSERVATION.format(tool=tool.name), None)
                    continue
            pending.append((action, tool))

        results = await asyncio.gather(*(self._run_tool(tool, action) for action, tool in pending))
        for (action, _), result in zip(pending, results):
            observations[action.id] = result
        return observations

    async def _run_tool(self, tool: Tool, action: AgentAction) -> tuple[str, bool]:
        try:
            observation = await tool.call(action.tool_input)
        except Exception as e:
            # Pass the error back to the model and let it decide what to do
            logger.warning(f"Tool '{tool.name}' failed: {e}")
            return TOOL_ERROR_OBSERVATION.format(tool=tool.name, error=e), True
        logger.debug(f"Tool {tool.name} result: {observation}")
        return observation, False

    def _observe(
        self,
        run: _Run,
        actions: Sequence[AgentAction],
        observations: dict[str, tuple[str, bool | None]],
    ) -> None:
        for action in actions:
            observation, failed = observations[action.id]
            run.steps.append(AgentStep(action=action, observation=observation))
            if failed:
                run.tool_failures += 1
            elif failed is False:
                run.tool_failures = 0

        # A batch is judged by the streak it leaves behind
        limit = self.max_consecutive_tool_errors
        if limit is not None and run.tool_failures >= limit:
            raise self._fail(
                run,
                ToolErrorLimitExceeded(
                    f"Tools failed {limit} times in a row",
                    steps=run.steps,
                ),
            )
