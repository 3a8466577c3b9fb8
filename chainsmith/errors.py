"""
Error taxonomy for chainsmith.

Every error raised by the library derives from ChainsmithError, which keeps
the underlying exception on both ``cause`` and ``__cause__`` so callers can
inspect what went wrong without parsing messages.

Hierarchy:

    ChainsmithError
    ├── PromptError
    │   ├── MissingVariable
    │   ├── MalformedTemplate
    │   └── InvalidVariable
    ├── KeyMismatch
    ├── LLMError
    ├── ToolError
    ├── OutputParserError
    │   └── UnparsableOutput
    └── ChainError
        ├── StreamingSinkError
        └── AgentError
            ├── MaxIterationsExceeded
            ├── TimeoutExceeded
            ├── ParseError
            └── ToolErrorLimitExceeded

Propagation policy:
- Prompt errors are raised before any model call is issued.
- KeyMismatch is raised while a composite chain is being constructed.
- ToolError and UnparsableOutput are absorbed by the agent loop and turned
  into observations; they only escape as AgentError subclasses once a
  retry bound is exhausted.
- LLMError carries a ``retryable`` flag which ChainError copies, so a caller
  can tell a flaky network from a broken configuration.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chainsmith.schemas.agent import AgentStep


class ChainsmithError(Exception):
    """Base class for all chainsmith errors."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


# ---------------------------------------------------------------------------
# Prompt formatting
# ---------------------------------------------------------------------------

class PromptError(ChainsmithError):
    """A template or its variables could not be turned into a prompt."""


class MissingVariable(PromptError):
    """A variable referenced by a template was not supplied."""

    def __init__(self, name: str):
        super().__init__(f"Variable '{name}' is missing from input variables")
        self.name = name


class MalformedTemplate(PromptError):
    """Template syntax is invalid or uses an unsupported directive."""

    def __init__(self, message: str, template: str | None = None):
        super().__init__(message)
        self.template = template


class InvalidVariable(PromptError):
    """A variable was supplied but has the wrong shape for its slot."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Variable '{name}' is invalid: {reason}")
        self.name = name


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

class KeyMismatch(ChainsmithError):
    """Chains were wired together with incompatible input/output keys."""

    def __init__(
        self,
        message: str,
        missing: Iterable[str] = (),
        collisions: Iterable[str] = (),
    ):
        super().__init__(message)
        self.missing = tuple(sorted(missing))
        self.collisions = tuple(sorted(collisions))


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class LLMError(ChainsmithError):
    """The model interface failed to produce a completion."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        retryable: bool = False,
    ):
        super().__init__(message, cause=cause)
        self.retryable = retryable


class ToolError(ChainsmithError):
    """A tool failed while executing."""


class OutputParserError(ChainsmithError):
    """Model output could not be converted into the expected structure."""


class UnparsableOutput(OutputParserError):
    """Model output matched none of the shapes an agent parser recognizes."""

    def __init__(self, raw_text: str, reason: str = "no recognizable answer or action"):
        super().__init__(f"Could not parse model output ({reason}): {raw_text!r}")
        self.raw_text = raw_text


# ---------------------------------------------------------------------------
# Chains and agents
# ---------------------------------------------------------------------------

class ChainError(ChainsmithError):
    """A chain invocation failed."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message, cause=cause)
        if retryable is None:
            retryable = bool(getattr(cause, "retryable", False))
        self.retryable = retryable


class StreamingSinkError(ChainError):
    """The caller-supplied streaming sink raised while receiving a delta."""


class AgentError(ChainError):
    """An agent invocation terminated without a final answer."""

    def __init__(
        self,
        message: str,
        steps: Sequence[AgentStep] = (),
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause=cause, retryable=False)
        self.steps: list[AgentStep] = list(steps)


class MaxIterationsExceeded(AgentError):
    """The agent hit its iteration bound before producing a final answer."""


class TimeoutExceeded(AgentError):
    """The agent exceeded its wall-clock budget."""


class ParseError(AgentError):
    """The model kept producing unparsable output past the retry bound."""


class ToolErrorLimitExceeded(AgentError):
    """Tools kept failing past the consecutive-failure bound."""


def describe(error: BaseException) -> dict[str, Any]:
    """Structured summary of an error, suitable for logging or API responses."""
    summary: dict[str, Any] = {
        "kind": type(error).__name__,
        "message": str(error),
        "retryable": bool(getattr(error, "retryable", False)),
    }
    cause = getattr(error, "cause", None) or error.__cause__
    if cause is not None:
        summary["cause"] = type(cause).__name__
    return summary
