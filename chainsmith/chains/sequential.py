"""
SequentialChain: run chains in order, feeding outputs forward.

Wiring is checked once, at construction. Starting from the declared input
keys, each chain's inputs must already be known, and each chain's outputs
must be new. A pipeline that would fail at run time for a wiring reason
fails here instead, with KeyMismatch naming the offending keys.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from chainsmith.chains.base import Chain
from chainsmith.config.logging import get_logger
from chainsmith.errors import KeyMismatch
from chainsmith.llm.options import CallOptions

logger = get_logger(__name__)


class SequentialChain(Chain):
    """
    A pipeline of chains.

    Each chain receives exactly its own declared inputs, taken from the
    caller's variables and the outputs of the chains before it.

    Streaming: only the last chain receives the caller's streaming sink;
    intermediate results are never streamed.

    Args:
        chains: Chains to run, in order
        input_keys: Variables the caller supplies. Defaults to the first
            chain's input keys.
        return_all: Return every intermediate output instead of only the
            last chain's outputs

    Raises:
        KeyMismatch: If a chain needs a key nothing provides, or produces a
            key that already exists
    """

    def __init__(
        self,
        chains: Sequence[Chain],
        input_keys: Sequence[str] | None = None,
        return_all: bool = False,
    ):
        if not chains:
            raise ValueError("SequentialChain needs at least one chain")
        self.chains: tuple[Chain, ...] = tuple(chains)
        self._input_keys = tuple(input_keys) if input_keys is not None else self.chains[0].input_keys
        self.return_all = return_all
        self._produced = self._validate_wiring()

    def _validate_wiring(self) -> tuple[str, ...]:
        known: dict[str, None] = dict.fromkeys(self._input_keys)
        produced: dict[str, None] = {}
        missing: set[str] = set()
        collisions: set[str] = set()

        for chain in self.chains:
            missing.update(key for key in chain.input_keys if key not in known)
            for key in chain.output_keys:
                if key in known:
                    collisions.add(key)
                known[key] = None
                produced[key] = None

        if missing or collisions:
            parts = []
            if missing:
                parts.append(f"missing inputs: {', '.join(sorted(missing))}")
            if collisions:
                parts.append(f"colliding outputs: {', '.join(sorted(collisions))}")
            raise KeyMismatch(
                f"Invalid chain wiring ({'; '.join(parts)})",
                missing=missing,
                collisions=collisions,
            )
        return tuple(produced)

    @property
    def input_keys(self) -> tuple[str, ...]:
        return self._input_keys

    @property
    def output_keys(self) -> tuple[str, ...]:
        if self.return_all:
            return self._produced
        return self.chains[-1].output_keys

    @property
    def output_key(self) -> str:
        return self.chains[-1].output_key

    async def _call(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        state = dict(inputs)
        # Intermediate chains get the options without the sink
        quiet_options = (
            options.model_copy(update={"streaming_sink": None})
            if options is not None and options.streaming_sink is not None
            else options
        )
        last = len(self.chains) - 1

        for index, chain in enumerate(self.chains):
            chain_inputs = {key: state[key] for key in chain.input_keys}
            logger.debug(f"Step {index + 1}/{len(self.chains)}: {type(chain).__name__}")
            outputs = await chain.invoke(
                chain_inputs, options if index == last else quiet_options
            )
            state.update(outputs)

        return {key: state[key] for key in self.output_keys}
