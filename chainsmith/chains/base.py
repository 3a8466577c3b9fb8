"""
Chain abstraction.

A chain maps a dict of named input variables to a dict of named outputs,
usually by formatting a prompt and calling a model. Chains compose: the
outputs of one become the inputs of the next (SequentialChain), and an agent
executor is itself a chain.

Contract shared by every chain:
- ``invoke`` checks every declared input before doing any work, so a missing
  variable never costs a model call.
- Failures surface as ChainError with the original exception on
  ``__cause__``. A ChainError raised by a nested chain passes through
  unchanged instead of being wrapped twice.
- Cancellation (asyncio.CancelledError) is never wrapped.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from chainsmith.config.logging import get_logger
from chainsmith.errors import ChainError, MissingVariable
from chainsmith.llm.options import CallOptions

logger = get_logger(__name__)


class Chain(ABC):
    """Abstract base class for chains."""

    @property
    @abstractmethod
    def input_keys(self) -> tuple[str, ...]:
        """Variable names this chain requires."""
        pass

    @property
    @abstractmethod
    def output_keys(self) -> tuple[str, ...]:
        """Keys of the mapping ``invoke`` returns."""
        pass

    @property
    def output_key(self) -> str:
        """The primary output, returned by ``run``."""
        return self.output_keys[0]

    @abstractmethod
    async def _call(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        """
        Do the chain's work. Inputs have already been validated.

        Implementations may raise anything; ``invoke`` does the wrapping.
        """
        pass

    def validate_inputs(self, variables: Mapping[str, Any]) -> None:
        """
        Raises:
            ChainError: Wrapping MissingVariable for the first absent input
        """
        for key in self.input_keys:
            if key not in variables:
                cause = MissingVariable(key)
                raise ChainError(f"{type(self).__name__}: {cause.message}", cause=cause)

    async def invoke(
        self,
        variables: Mapping[str, Any],
        options: CallOptions | None = None,
    ) -> dict[str, Any]:
        """
        Run the chain.

        Args:
            variables: Input variables; keys beyond ``input_keys`` are allowed
            options: Per-call options (streaming sink, sampling overrides)

        Returns:
            Mapping with every key in ``output_keys``

        Raises:
            ChainError: On any failure, including missing inputs
        """
        self.validate_inputs(variables)
        name = type(self).__name__
        logger.debug(f"{name} invoked with inputs: {sorted(variables)}")
        try:
            outputs = await self._call(dict(variables), options)
        except ChainError:
            raise
        except Exception as e:
            raise ChainError(f"{name} failed: {e}", cause=e) from e
        logger.debug(f"{name} produced outputs: {sorted(outputs)}")
        return outputs

    async def run(
        self,
        variables: Mapping[str, Any],
        options: CallOptions | None = None,
    ) -> str:
        """Invoke the chain and return only its primary output, as text."""
        outputs = await self.invoke(variables, options)
        value = outputs[self.output_key]
        return value if isinstance(value, str) else str(value)
