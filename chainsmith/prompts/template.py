"""
Prompt Template Engine.

Turns a curly-brace template plus a mapping of named variables into text.

Supported syntax:
    {name}      substituted with the variable ``name``
    {{ and }}   literal braces

Anything else inside braces (attribute or index access, ``!r`` conversions,
format specs, nested fields, positional ``{}``/``{0}`` fields) is rejected
with MalformedTemplate when the template is compiled, not when it is used.
Templates know their required variable names up front, so a chain can check
its whole input mapping before it issues a single model call.

Example:
    >>> template = PromptTemplate.from_template("Give me a name for a {product} shop")
    >>> template.input_variables
    ('product',)
    >>> template.format({"product": "sock"})
    'Give me a name for a sock shop'
"""

from __future__ import annotations

import json
import string
from collections.abc import Mapping, Sequence
from typing import Any

from chainsmith.config.logging import get_logger
from chainsmith.errors import MalformedTemplate, MissingVariable
from chainsmith.schemas.messages import Message, get_buffer_string
from chainsmith.schemas.prompt_value import StringPrompt

logger = get_logger(__name__)

_formatter = string.Formatter()

# A compiled template: (literal_text, variable_name_or_None) pairs
_Segments = tuple[tuple[str, str | None], ...]


def _compile(template: str) -> _Segments:
    """Split a template into literal and variable segments, validating syntax."""
    try:
        parsed = list(_formatter.parse(template))
    except ValueError as e:
        raise MalformedTemplate(f"Invalid template syntax (unbalanced braces?): {e}", template=template) from e

    segments: list[tuple[str, str | None]] = []
    for literal, field_name, format_spec, conversion in parsed:
        if field_name is None:
            segments.append((literal, None))
            continue
        if conversion:
            raise MalformedTemplate(
                f"Conversion '!{conversion}' is not supported in '{{{field_name}}}'",
                template=template,
            )
        if format_spec:
            raise MalformedTemplate(
                f"Format spec or nested field ':{format_spec}' is not supported "
                f"in '{{{field_name}}}'",
                template=template,
            )
        if not field_name.isidentifier():
            raise MalformedTemplate(
                f"'{{{field_name}}}' is not a plain variable name",
                template=template,
            )
        segments.append((literal, field_name))
    return tuple(segments)


def _variables(segments: _Segments) -> tuple[str, ...]:
    # dict preserves first-seen order while de-duplicating
    return tuple(dict.fromkeys(name for _, name in segments if name is not None))


def parse_variables(template: str) -> tuple[str, ...]:
    """
    Return the variable names a template references, in first-use order.

    Raises:
        MalformedTemplate: If the template syntax is invalid
    """
    return _variables(_compile(template))


def render_value(value: Any) -> str:
    """
    Render a variable value as prompt text.

    Strings pass through, message sequences become a ``Role: content``
    transcript, containers become JSON, everything else goes through str().
    """
    if isinstance(value, str):
        return value
    if isinstance(value, Message):
        return value.content
    if (
        isinstance(value, Sequence)
        and not isinstance(value, (str, bytes))
        and all(isinstance(v, Message) for v in value)
    ):
        # An empty history is an empty transcript
        return get_buffer_string(value)
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _render(segments: _Segments, variables: Mapping[str, Any]) -> str:
    missing = [name for name in _variables(segments) if name not in variables]
    if missing:
        raise MissingVariable(missing[0])
    return "".join(
        literal + (render_value(variables[name]) if name is not None else "")
        for literal, name in segments
    )


def format_template(template: str, variables: Mapping[str, Any]) -> str:
    """
    Substitute ``variables`` into ``template``.

    Args:
        template: Curly-brace template string
        variables: Mapping of variable name to value. Extra keys are ignored.

    Returns:
        The formatted text, with no placeholder syntax left in it

    Raises:
        MalformedTemplate: If the template syntax is invalid
        MissingVariable: If a referenced variable is absent
    """
    return _render(_compile(template), variables)


class PromptTemplate:
    """
    A compiled string template with a declared set of input variables.

    Args:
        template: Curly-brace template string
        input_variables: Declared variable names. When omitted they are
            derived from the template. When given, they must cover every
            name the template references; declaring extra names is allowed
            and makes them required inputs.

    Raises:
        MalformedTemplate: If the syntax is invalid or a referenced name is
            not declared
    """

    def __init__(self, template: str, input_variables: Sequence[str] | None = None):
        self._template = template
        self._segments = _compile(template)
        referenced = _variables(self._segments)
        if input_variables is None:
            self._input_variables = referenced
        else:
            declared = tuple(dict.fromkeys(input_variables))
            undeclared = [name for name in referenced if name not in declared]
            if undeclared:
                raise MalformedTemplate(
                    f"Template references undeclared variables: {', '.join(undeclared)}",
                    template=template,
                )
            self._input_variables = declared

    @classmethod
    def from_template(cls, template: str) -> PromptTemplate:
        return cls(template)

    @property
    def template(self) -> str:
        return self._template

    @property
    def input_variables(self) -> tuple[str, ...]:
        return self._input_variables

    def validate_variables(self, variables: Mapping[str, Any]) -> None:
        """Raise MissingVariable for the first declared name not in ``variables``."""
        for name in self._input_variables:
            if name not in variables:
                raise MissingVariable(name)

    def format(self, variables: Mapping[str, Any]) -> str:
        self.validate_variables(variables)
        text = _render(self._segments, variables)
        logger.debug(f"Formatted prompt: {text}")
        return text

    def format_prompt(self, variables: Mapping[str, Any]) -> StringPrompt:
        return StringPrompt(text=self.format(variables))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PromptTemplate):
            return NotImplemented
        return (self._template, self._input_variables) == (
            other._template,
            other._input_variables,
        )

    def __hash__(self) -> int:
        return hash((self._template, self._input_variables))

    def __repr__(self) -> str:
        return f"PromptTemplate(template={self._template!r}, input_variables={self._input_variables!r})"
