"""
Message Formatter.

A ChatPromptTemplate is an ordered sequence of nodes:

- LiteralMessage: a fixed Message, copied as is
- TemplatedMessage: a role plus a PromptTemplate, formatted into one Message
- HistoryPlaceholder: expands to the Message sequence stored under a
  variable name (usually supplied by Memory or by the agent scratchpad)

Formatting is a pure function of (nodes, variables). Every required name is
checked before any node is formatted, so a bad input mapping fails as a
whole and never half-way through.

Example:
    >>> prompt = ChatPromptTemplate.from_nodes(
    ...     LiteralMessage.system("You are a helpful assistant."),
    ...     HistoryPlaceholder("history"),
    ...     TemplatedMessage.human("{input}"),
    ... )
    >>> prompt.input_variables
    ('history', 'input')
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Union

from pydantic import ValidationError

from chainsmith.config.logging import get_logger
from chainsmith.errors import InvalidVariable, MissingVariable
from chainsmith.prompts.template import PromptTemplate
from chainsmith.schemas.messages import Message, MessageRole
from chainsmith.schemas.prompt_value import ChatPrompt

logger = get_logger(__name__)


class LiteralMessage:
    """A node that always produces the same message."""

    def __init__(self, message: Message):
        self.message = message

    @classmethod
    def system(cls, content: str) -> LiteralMessage:
        return cls(Message.system(content))

    @classmethod
    def human(cls, content: str) -> LiteralMessage:
        return cls(Message.human(content))

    @classmethod
    def ai(cls, content: str) -> LiteralMessage:
        return cls(Message.ai(content))

    @property
    def input_variables(self) -> tuple[str, ...]:
        return ()

    def format_messages(self, variables: Mapping[str, Any]) -> list[Message]:
        return [self.message]

    def __repr__(self) -> str:
        return f"LiteralMessage({self.message!r})"


class TemplatedMessage:
    """A node that formats one message of a fixed role from a template."""

    def __init__(self, role: MessageRole, template: PromptTemplate | str):
        self.role = MessageRole(role)
        self.template = (
            template if isinstance(template, PromptTemplate) else PromptTemplate(template)
        )

    @classmethod
    def system(cls, template: PromptTemplate | str) -> TemplatedMessage:
        return cls(MessageRole.SYSTEM, template)

    @classmethod
    def human(cls, template: PromptTemplate | str) -> TemplatedMessage:
        return cls(MessageRole.HUMAN, template)

    @classmethod
    def ai(cls, template: PromptTemplate | str) -> TemplatedMessage:
        return cls(MessageRole.AI, template)

    @property
    def required_variables(self) -> tuple[str, ...]:
        return self.template.input_variables

    @property
    def input_variables(self) -> tuple[str, ...]:
        return self.required_variables

    def format_messages(self, variables: Mapping[str, Any]) -> list[Message]:
        content = self.template.format(variables)
        return [Message(role=self.role, content=content)]

    def __repr__(self) -> str:
        return f"TemplatedMessage(role={self.role.value!r}, template={self.template.template!r})"


class HistoryPlaceholder:
    """A node that expands to the message sequence held by a variable."""

    def __init__(self, variable_name: str):
        self.variable_name = variable_name

    @property
    def input_variables(self) -> tuple[str, ...]:
        return (self.variable_name,)

    def format_messages(self, variables: Mapping[str, Any]) -> list[Message]:
        if self.variable_name not in variables:
            raise MissingVariable(self.variable_name)
        return _coerce_messages(self.variable_name, variables[self.variable_name])

    def __repr__(self) -> str:
        return f"HistoryPlaceholder({self.variable_name!r})"


TemplateNode = Union[LiteralMessage, TemplatedMessage, HistoryPlaceholder]


def _coerce_messages(name: str, value: Any) -> list[Message]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidVariable(
            name, f"expected a sequence of messages, got {type(value).__name__}"
        )
    try:
        return [Message.coerce(item) for item in value]
    except (TypeError, ValueError, ValidationError) as e:
        raise InvalidVariable(name, f"not a message sequence ({e})") from e


class ChatPromptTemplate:
    """
    Ordered composition of literal, templated and placeholder nodes.

    Instances are immutable; ``append`` returns a new template. The same
    instance can safely serve any number of concurrent invocations.
    """

    def __init__(self, nodes: Iterable[TemplateNode]):
        self._nodes: tuple[TemplateNode, ...] = tuple(nodes)
        for node in self._nodes:
            if not isinstance(node, (LiteralMessage, TemplatedMessage, HistoryPlaceholder)):
                raise TypeError(f"Unsupported template node: {node!r}")

    @classmethod
    def from_nodes(cls, *nodes: TemplateNode) -> ChatPromptTemplate:
        return cls(nodes)

    @classmethod
    def from_template(cls, template: str) -> ChatPromptTemplate:
        """Single human message built from ``template``."""
        return cls([TemplatedMessage.human(template)])

    def append(self, node: TemplateNode) -> ChatPromptTemplate:
        return ChatPromptTemplate([*self._nodes, node])

    @property
    def nodes(self) -> tuple[TemplateNode, ...]:
        return self._nodes

    @property
    def input_variables(self) -> tuple[str, ...]:
        names: dict[str, None] = {}
        for node in self._nodes:
            names.update(dict.fromkeys(node.input_variables))
        return tuple(names)

    def validate_variables(self, variables: Mapping[str, Any]) -> None:
        """
        Check that every templated and placeholder name is present.

        Raises:
            MissingVariable: For the first absent name, in node order
        """
        for name in self.input_variables:
            if name not in variables:
                raise MissingVariable(name)

    def format_messages(self, variables: Mapping[str, Any]) -> list[Message]:
        self.validate_variables(variables)
        messages: list[Message] = []
        for node in self._nodes:
            messages.extend(node.format_messages(variables))
        for message in messages:
            logger.debug(f"{message.role.value}: {message.content}")
        return messages

    def format_prompt(self, variables: Mapping[str, Any]) -> ChatPrompt:
        return ChatPrompt(messages=tuple(self.format_messages(variables)))

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"ChatPromptTemplate({list(self._nodes)!r})"
