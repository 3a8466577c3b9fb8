"""
ConversationalChain: a chat turn with memory.

Each call loads the history from memory, injects it into the prompt under
``memory_key``, runs the model, and on success saves the (human, ai) pair.
A failed or cancelled call leaves memory untouched.
"""

from __future__ import annotations

from typing import Any

from chainsmith.chains.base import Chain
from chainsmith.chains.llm import LLMChain
from chainsmith.config.logging import get_logger
from chainsmith.errors import ChainError
from chainsmith.llm.base import ChatModel
from chainsmith.llm.options import CallOptions
from chainsmith.memory.base import BaseMemory
from chainsmith.memory.buffer import DummyMemory
from chainsmith.prompts import BasePromptTemplate
from chainsmith.prompts.chat import ChatPromptTemplate, HistoryPlaceholder, LiteralMessage, TemplatedMessage
from chainsmith.prompts.template import render_value

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "The following is a friendly conversation between a human and an AI. "
    "The AI is talkative and provides lots of specific details from its context. "
    "If the AI does not know the answer to a question, it truthfully says it does not know."
)


def default_conversation_prompt(
    memory_key: str = "history",
    input_key: str = "input",
) -> ChatPromptTemplate:
    """System message, then the history, then the new human turn."""
    return ChatPromptTemplate.from_nodes(
        LiteralMessage.system(DEFAULT_SYSTEM_PROMPT),
        HistoryPlaceholder(memory_key),
        TemplatedMessage.human(f"{{{input_key}}}"),
    )


class ConversationalChain(Chain):
    """
    Chat with memory.

    Args:
        model: Model to call
        memory: Conversation memory (default: DummyMemory, i.e. no history)
        prompt: Prompt that uses ``memory_key`` and ``input_key``. The default
            is a system message, the history, and the human input.
        input_key: Variable holding the human turn (default: "input")
        output_key: Key of the answer (default: "text")
        memory_key: Variable the history is injected under (default: "history")
        options: Default call options
    """

    def __init__(
        self,
        model: ChatModel,
        memory: BaseMemory | None = None,
        prompt: BasePromptTemplate | None = None,
        input_key: str = "input",
        output_key: str = "text",
        memory_key: str = "history",
        options: CallOptions | None = None,
    ):
        self.memory = memory if memory is not None else DummyMemory()
        self.input_key = input_key
        self.memory_key = memory_key
        prompt = prompt or default_conversation_prompt(memory_key, input_key)
        self._llm_chain = LLMChain(prompt, model, output_key=output_key, options=options)

    @property
    def input_keys(self) -> tuple[str, ...]:
        keys = [key for key in self._llm_chain.input_keys if key != self.memory_key]
        if self.input_key not in keys:
            keys.insert(0, self.input_key)
        return tuple(keys)

    @property
    def output_keys(self) -> tuple[str, ...]:
        return self._llm_chain.output_keys

    async def _call(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        if self.memory_key in inputs:
            raise ChainError(
                f"Input '{self.memory_key}' is reserved for conversation history "
                f"and is filled from memory"
            )

        history = await self.memory.load()
        variables = {**inputs, self.memory_key: history}
        outputs = await self._llm_chain.invoke(variables, options)

        await self.memory.save(
            render_value(inputs[self.input_key]), render_value(outputs[self.output_key])
        )
        logger.debug(f"Saved turn to {type(self.memory).__name__}")
        return outputs
