"""
Agent output parser.

Turns a model response into an AgentFinish or a list of AgentAction.
Models are sloppy about format, so several shapes are accepted, tried in
this order:

1. JSON, fenced (```json ... ```) or bare, optionally preceded by prose:
       {"action": "search", "action_input": "weather in Lisbon"}
       {"final_answer": "It is sunny."}
       [{"action": "a", "action_input": "x"}, {"action": "b", "action_input": "y"}]
   Trailing commas are dropped and unclosed braces/brackets are closed
   before giving up on the JSON.
2. A line-based regex over "final_answer": "..." / "action": "..." pairs, for
   JSON too broken to repair (e.g. unescaped newlines inside strings).
3. ReAct text markers:
       Final Answer: It is sunny.
       Action: search
       Action Input: weather in Lisbon

Anything else raises UnparsableOutput. The agent executor turns that into a
corrective observation; the parser itself never guesses that free text was
meant as a final answer.
"""

from __future__ import annotations

import json
import re
from typing import Any

from chainsmith.config.logging import get_logger
from chainsmith.errors import UnparsableOutput
from chainsmith.output_parsers.base import BaseOutputParser
from chainsmith.schemas.agent import AgentAction, AgentDecision, AgentFinish, as_batch

logger = get_logger(__name__)

FORMAT_INSTRUCTIONS = """RESPONSE FORMAT INSTRUCTIONS
----------------------------

You MUST either use a tool OR give your final answer, never both in the same response.

To use a tool, respond with a JSON object in a markdown code block:

```json
{
    "action": string, // The action to take, must be one of [{tool_names}]
    "action_input": string // The input to the action
}
```

To give your final answer, respond with:

```json
{
    "final_answer": string // Your final answer, as complete as possible
}
```"""

_JSON_FENCE = re.compile(r"```(?:json)?\s*([\s\S]+?)\s*```", re.IGNORECASE)

_REGEX_FINAL = re.compile(r'"final_answer"\s*:\s*"(.*)"\s*,?\s*$', re.MULTILINE)
_REGEX_ACTION = re.compile(r'"action"\s*:\s*"(.*?)"\s*,?\s*$', re.MULTILINE)
_REGEX_ACTION_INPUT = re.compile(r'"action_input"\s*:\s*"(.*)"\s*,?\s*$', re.MULTILINE)

_BULLET = r"^[ \t]*(?:[-*>]+[ \t]*|\d+[.)][ \t]*)?"
_REACT_FINAL = re.compile(_BULLET + r"final[ \t_]*answer[ \t]*:[ \t]*(.*)", re.IGNORECASE | re.MULTILINE | re.DOTALL)
_REACT_ACTION = re.compile(_BULLET + r"action[ \t]*:[ \t]*(.+?)[ \t]*$", re.IGNORECASE | re.MULTILINE)
_REACT_ACTION_INPUT = re.compile(
    _BULLET + r"action[ \t_]*input[ \t]*:[ \t]*(.*?)(?:\n[ \t]*observation[ \t]*:|\Z)",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)

_ESCAPE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


# ---------------------------------------------------------------------------
# JSON repair
# ---------------------------------------------------------------------------

def remove_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing brace or bracket (outside strings)."""
    out: list[str] = []
    inside_string = False
    escaped = False
    for i, char in enumerate(text):
        if inside_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                inside_string = False
            out.append(char)
            continue
        if char == '"':
            inside_string = True
        elif char == ",":
            rest = text[i + 1:].lstrip()
            if rest[:1] in ("}", "]"):
                continue
        out.append(char)
    return "".join(out)


def balance_brackets(text: str) -> str:
    """
    Close any braces/brackets (and an open string) left open at the end.

    Mismatched or surplus closing characters mean the text is not a
    truncated JSON document; it is returned unchanged.
    """
    stack: list[str] = []
    inside_string = False
    escaped = False
    for char in text:
        if inside_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                inside_string = False
            continue
        if char == '"':
            inside_string = True
        elif char == "{":
            stack.append("}")
        elif char == "[":
            stack.append("]")
        elif char in "}]":
            if not stack or stack.pop() != char:
                return text
    closing = '"' if inside_string else ""
    return text + closing + "".join(reversed(stack))


def parse_partial_json(text: str) -> Any | None:
    """Parse JSON, repairing trailing commas and unclosed structures. None if hopeless."""
    for candidate in _repair_candidates(text):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def _repair_candidates(text: str):
    yield text
    cleaned = remove_trailing_commas(text)
    yield cleaned
    yield balance_brackets(cleaned)


def parse_json_markdown(text: str) -> Any | None:
    """
    Find and parse the JSON payload of a response.

    Looks at a fenced block first, then the whole text, then the text from
    the first ``{`` or ``[`` onwards (prose before the JSON).
    """
    match = _JSON_FENCE.search(text)
    if match:
        value = parse_partial_json(match.group(1))
        if value is not None:
            return value
    stripped = text.strip()
    value = parse_partial_json(stripped)
    if value is not None:
        return value
    starts = [i for i in (stripped.find("{"), stripped.find("[")) if i > 0]
    if starts:
        return parse_partial_json(stripped[min(starts):])
    return None


# ---------------------------------------------------------------------------
# Decision building
# ---------------------------------------------------------------------------

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _unescape(text: str) -> str:
    return _ESCAPE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)


def _is_final_action(name: str) -> bool:
    return name.strip().lower().replace("_", " ") == "final answer"


def _decision_from_json(value: Any, raw: str) -> AgentFinish | list[AgentAction] | None:
    if isinstance(value, dict):
        if "final_answer" in value:
            return AgentFinish(output=_as_text(value["final_answer"]), log=raw)
        action = value.get("action")
        if isinstance(action, str) and action.strip():
            tool_input = _as_text(value.get("action_input"))
            if _is_final_action(action):
                return AgentFinish(output=tool_input, log=raw)
            return [AgentAction(tool=action.strip(), tool_input=tool_input, log=raw)]
        return None

    if isinstance(value, list) and value:
        actions: list[AgentAction] = []
        for item in value:
            decision = _decision_from_json(item, raw)
            if not isinstance(decision, list):
                # A final answer mixed into a batch of actions is ambiguous
                return None
            actions.extend(decision)
        return as_batch(actions)
    return None


def _decision_from_regex(text: str) -> AgentFinish | list[AgentAction] | None:
    final = _REGEX_FINAL.search(text)
    if final:
        return AgentFinish(output=_unescape(final.group(1)), log=text)
    action = _REGEX_ACTION.search(text)
    action_input = _REGEX_ACTION_INPUT.search(text)
    if action and action_input:
        name = _unescape(action.group(1)).strip()
        if _is_final_action(name):
            return AgentFinish(output=_unescape(action_input.group(1)), log=text)
        return [AgentAction(tool=name, tool_input=_unescape(action_input.group(1)), log=text)]
    return None


def _clean_tool_name(name: str) -> str:
    return name.strip().rstrip(".,;:!").strip("`'\"*").strip()


def _clean_tool_input(payload: str) -> str:
    payload = payload.strip()
    if len(payload) >= 2 and payload[0] == payload[-1] and payload[0] in "\"'`":
        payload = payload[1:-1]
    return payload


def _decision_from_react(text: str) -> AgentFinish | list[AgentAction] | None:
    final = _REACT_FINAL.search(text)
    action = _REACT_ACTION.search(text)
    action_input = _REACT_ACTION_INPUT.search(text)

    if action and action_input and (final is None or action.start() < final.start()):
        name = _clean_tool_name(action.group(1))
        if name:
            return [
                AgentAction(
                    tool=name,
                    tool_input=_clean_tool_input(action_input.group(1)),
                    log=text,
                )
            ]
    if final:
        return AgentFinish(output=final.group(1).strip(), log=text)
    return None


class AgentOutputParser(BaseOutputParser[AgentDecision]):
    """
    Parses agent responses into a final answer or tool actions.

    Non-string ``action_input`` values (objects, numbers) are serialized to
    JSON text, since tools take a single string input.
    """

    def parse(self, text: str) -> AgentFinish | list[AgentAction]:
        if not text or not text.strip():
            raise UnparsableOutput(text, reason="empty response")

        value = parse_json_markdown(text)
        if value is not None:
            decision = _decision_from_json(value, text)
            if decision is not None:
                return decision
            logger.debug("JSON found in agent output but with no action or final answer")

        decision = _decision_from_regex(text)
        if decision is not None:
            return decision

        decision = _decision_from_react(text)
        if decision is not None:
            return decision

        raise UnparsableOutput(text)

    @property
    def format_instructions(self) -> str:
        """Response format text; ``{tool_names}`` is left for the agent to fill in."""
        return FORMAT_INSTRUCTIONS
