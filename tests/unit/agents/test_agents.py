"""
Unit tests for the built-in agents.

Tests cover:
- Tool registry (duplicates, lenient lookup)
- ConversationalAgent prompt construction and scratchpad replay
- ToolCallingAgent planning from native tool calls
- ToolCallingAgent end to end under the executor
"""

import json

import pytest

from chainsmith.agents.base import PARSE_ERROR_TOOL
from chainsmith.agents.conversational import ConversationalAgent, create_prompt
from chainsmith.agents.executor import AgentExecutor
from chainsmith.agents.prompt import INVALID_FORMAT_OBSERVATION
from chainsmith.agents.tool_calling import ToolCallingAgent
from chainsmith.errors import MaxIterationsExceeded
from chainsmith.llm.models import GenerateResult, ToolCall
from chainsmith.schemas.agent import AgentAction, AgentFinish, AgentStep, as_batch
from chainsmith.schemas.messages import MessageRole
from chainsmith.tools.base import FunctionTool


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tools():
    return [
        FunctionTool("calculator", "Evaluates arithmetic expressions", lambda expression: "4"),
        FunctionTool("web_search", "Searches the web", lambda query: "Sunny, 24C"),
    ]


def _tool_call_result(*calls: ToolCall, text: str = "") -> GenerateResult:
    return GenerateResult(text=text, tool_calls=list(calls), model="scripted")


class TestToolRegistry:
    """Tests for the Agent base class."""

    def test_duplicate_names_rejected(self, make_model):
        with pytest.raises(ValueError, match="Duplicate"):
            ConversationalAgent(
                make_model(),
                [FunctionTool("search", "a", str), FunctionTool("Search", "b", str)],
            )

    def test_lenient_lookup(self, make_model, tools):
        agent = ConversationalAgent(make_model(), tools)
        assert agent.get_tool("Web Search") is tools[1]
        assert agent.get_tool("CALCULATOR") is tools[0]
        assert agent.get_tool("weather") is None
        assert agent.tool_names == ["calculator", "web_search"]


class TestConversationalPrompt:
    """Tests for create_prompt()."""

    def test_system_message_lists_tools(self, tools):
        prompt = create_prompt(tools)
        system = prompt.nodes[0].message.content

        assert "> calculator: Evaluates arithmetic expressions" in system
        assert "> web_search: Searches the web" in system
        assert "must be one of [calculator, web_search]" in system
        assert "{tools}" not in system
        assert "{tool_names}" not in system

    def test_input_variables(self, tools):
        assert create_prompt(tools).input_variables == ("chat_history", "input", "agent_scratchpad")

    def test_prefix_without_placeholder_gets_catalogue(self, tools):
        system = create_prompt(tools, prefix="You are terse.").nodes[0].message.content
        assert system.startswith("You are terse.\n\n> calculator")

    def test_suffix_braces_are_literal(self, tools):
        prompt = create_prompt(tools, suffix="\nReply as {json}.")
        messages = prompt.format_messages({"chat_history": [], "input": "hi", "agent_scratchpad": []})
        assert messages[-1].content == "hi\nReply as {json}."


class TestConversationalScratchpad:
    """Tests for ConversationalAgent.construct_scratchpad()."""

    def test_parallel_actions_share_log(self):
        log = '[{"action": "a"}, {"action": "b"}]'
        steps = [
            AgentStep(action=AgentAction(tool="a", log=log, batch_id="b1"), observation="A"),
            AgentStep(action=AgentAction(tool="b", log=log, batch_id="b1"), observation="B"),
        ]

        messages = ConversationalAgent.construct_scratchpad(steps)

        assert [m.role for m in messages] == [MessageRole.AI, MessageRole.HUMAN, MessageRole.HUMAN]
        assert messages[0].content == log
        assert "A" in messages[1].content

    def test_sequential_steps(self):
        steps = [
            AgentStep(action=AgentAction(tool="a", log="first"), observation="1"),
            AgentStep(action=AgentAction(tool="a", log="second"), observation="2"),
        ]
        messages = ConversationalAgent.construct_scratchpad(steps)
        assert [m.content for m in messages[::2]] == ["first", "second"]

    def test_identical_logs_from_separate_responses(self):
        log = '{"action": "a", "action_input": "x"}'
        steps = [
            AgentStep(action=AgentAction(tool="a", log=log), observation="1"),
            AgentStep(action=AgentAction(tool="a", log=log), observation="2"),
        ]

        messages = ConversationalAgent.construct_scratchpad(steps)

        assert [m.role for m in messages] == [
            MessageRole.AI,
            MessageRole.HUMAN,
            MessageRole.AI,
            MessageRole.HUMAN,
        ]

    @pytest.mark.asyncio
    async def test_repeated_action_replayed_each_iteration(self, make_model, tools):
        model = make_model(['{"action": "calculator", "action_input": "2+2"}'])
        executor = AgentExecutor(ConversationalAgent(model, tools), max_iterations=3)

        with pytest.raises(MaxIterationsExceeded):
            await executor.invoke({"input": "What is 2+2?"})

        assert len(model.calls) == 3
        scratchpad = model.last_messages()[-4:]
        assert [m.role for m in scratchpad] == [
            MessageRole.AI,
            MessageRole.HUMAN,
            MessageRole.AI,
            MessageRole.HUMAN,
        ]
        assert all("calculator" in m.content for m in scratchpad[::2])

    def test_as_batch_shares_one_id(self):
        actions = as_batch([AgentAction(tool="a"), AgentAction(tool="b")])
        assert actions[0].batch_id == actions[1].batch_id
        assert actions[0].id != actions[1].id
        assert AgentAction(tool="a").batch_id != AgentAction(tool="a").batch_id

    @pytest.mark.asyncio
    async def test_plan_parses_response(self, make_model, tools):
        model = make_model(['{"final_answer": "done"}'])
        agent = ConversationalAgent(model, tools)

        decision = await agent.plan([], {"input": "hi", "chat_history": []})

        assert isinstance(decision, AgentFinish)
        assert decision.output == "done"


class TestToolCallingAgent:
    """Tests for ToolCallingAgent."""

    @pytest.mark.asyncio
    async def test_tool_definitions_sent(self, make_model, tools):
        model = make_model(["hi"])
        agent = ToolCallingAgent(model, tools)

        await agent.plan([], {"input": "hi", "chat_history": []})

        _, options = model.calls[-1]
        assert [d["function"]["name"] for d in options.tools] == ["calculator", "web_search"]

    @pytest.mark.asyncio
    async def test_text_is_final_answer(self, make_model, tools):
        agent = ToolCallingAgent(make_model(["Hello there"]), tools)
        decision = await agent.plan([], {"input": "hi", "chat_history": []})
        assert decision == AgentFinish(output="Hello there", log="Hello there")

    @pytest.mark.asyncio
    async def test_tool_calls_become_actions(self, make_model, tools):
        result = _tool_call_result(
            ToolCall(id="call_1", name="calculator", arguments='{"input": "2+2"}'),
            ToolCall(id="call_2", name="web_search", arguments='{"input": "weather"}'),
        )
        agent = ToolCallingAgent(make_model([result]), tools)

        actions = await agent.plan([], {"input": "hi", "chat_history": []})

        assert [(a.id, a.tool, a.tool_input) for a in actions] == [
            ("call_1", "calculator", '{"input": "2+2"}'),
            ("call_2", "web_search", '{"input": "weather"}'),
        ]
        assert json.loads(actions[0].log)["tool_calls"][1]["id"] == "call_2"

    def test_scratchpad_replays_provider_messages(self):
        calls = [
            ToolCall(id="call_1", name="calculator", arguments="{}").to_provider_dict(),
            ToolCall(id="call_2", name="web_search", arguments="{}").to_provider_dict(),
        ]
        log = json.dumps({"content": "", "tool_calls": calls})
        steps = [
            AgentStep(action=AgentAction(id="call_1", tool="calculator", log=log, batch_id="b1"), observation="4"),
            AgentStep(action=AgentAction(id="call_2", tool="web_search", log=log, batch_id="b1"), observation="Sunny"),
        ]

        messages = ToolCallingAgent.construct_scratchpad(steps)

        assert [m.role for m in messages] == [MessageRole.AI, MessageRole.TOOL, MessageRole.TOOL]
        assert messages[0].metadata["tool_calls"] == calls
        assert messages[1].to_provider_dict() == {
            "role": "tool",
            "content": "4",
            "tool_call_id": "call_1",
            "name": "calculator",
        }

    def test_scratchpad_plain_log(self):
        steps = [
            AgentStep(
                action=AgentAction(tool=PARSE_ERROR_TOOL, log="garbled"),
                observation=INVALID_FORMAT_OBSERVATION,
            )
        ]
        messages = ToolCallingAgent.construct_scratchpad(steps)
        assert [m.role for m in messages] == [MessageRole.AI, MessageRole.HUMAN]

    @pytest.mark.asyncio
    async def test_end_to_end(self, make_model, tools):
        received = []
        calculator = FunctionTool("calculator", "Arithmetic", lambda e: received.append(e) or "4")
        model = make_model(
            [
                _tool_call_result(ToolCall(id="call_1", name="calculator", arguments='{"input": "2+2"}')),
                "2+2 is 4.",
            ]
        )
        executor = AgentExecutor(ToolCallingAgent(model, [calculator]))

        assert await executor.run({"input": "What is 2+2?"}) == "2+2 is 4."

        assert received == ["2+2"]
        replay = model.last_messages()[-2:]
        assert replay[0].to_provider_dict()["tool_calls"][0]["id"] == "call_1"
        assert replay[1].metadata == {"tool_call_id": "call_1", "name": "calculator"}
