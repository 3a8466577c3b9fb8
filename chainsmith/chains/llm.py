"""
LLMChain: one prompt, one model call, one parsed output.

Data flow:
    variables → prompt.format_prompt() → PromptValue.to_messages()
                                              ↓
                          ChatModel.generate()  or  ChatModel.stream() → sink
                                              ↓
                               output_parser.parse(text) → {output_key: value}

Streaming: when the call options carry a streaming sink, each delta is
handed to the sink as it arrives and the deltas are joined into the text
that gets parsed. If the sink raises, the model stream is closed and the
call fails with StreamingSinkError; a partial stream is never retried.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from chainsmith.chains.base import Chain
from chainsmith.config.logging import get_logger
from chainsmith.errors import StreamingSinkError
from chainsmith.llm.base import ChatModel
from chainsmith.llm.models import GenerateResult
from chainsmith.llm.options import CallOptions, StreamingSink, emit
from chainsmith.output_parsers.base import BaseOutputParser, StrOutputParser
from chainsmith.prompts import BasePromptTemplate
from chainsmith.schemas.messages import Message

logger = get_logger(__name__)


class LLMChain(Chain):
    """
    Format a prompt, call the model once, parse the result.

    Args:
        prompt: PromptTemplate or ChatPromptTemplate
        model: Model to call
        output_key: Key of the single output (default: "text")
        output_parser: Parser applied to the completion text (default: identity)
        options: Default call options; per-call options are overlaid on these
    """

    def __init__(
        self,
        prompt: BasePromptTemplate,
        model: ChatModel,
        output_key: str = "text",
        output_parser: BaseOutputParser | None = None,
        options: CallOptions | None = None,
    ):
        self.prompt = prompt
        self.model = model
        self._output_key = output_key
        self.output_parser = output_parser or StrOutputParser()
        self.options = options or CallOptions()

    @property
    def input_keys(self) -> tuple[str, ...]:
        return self.prompt.input_variables

    @property
    def output_keys(self) -> tuple[str, ...]:
        return (self._output_key,)

    def format_messages(self, inputs: dict[str, Any]) -> list[Message]:
        return self.prompt.format_prompt(inputs).to_messages()

    async def generate(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None = None,
    ) -> GenerateResult:
        """
        Format the prompt and return the raw model result, unparsed.

        Agents use this to see native tool calls alongside the text.
        """
        call_options = self.options.merge(options)
        return await self.model.generate(self.format_messages(inputs), call_options)

    async def _call(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        call_options = self.options.merge(options)
        messages = self.format_messages(inputs)

        if call_options.streaming_sink is not None:
            text = await self._stream(messages, call_options, call_options.streaming_sink)
        else:
            result = await self.model.generate(messages, call_options)
            text = result.text
            logger.debug(
                f"Model {result.model or '?'} used {result.usage.total_tokens} tokens"
            )

        return {self._output_key: self.output_parser.parse(text)}

    async def _stream(
        self,
        messages: Sequence[Message],
        options: CallOptions,
        sink: StreamingSink,
    ) -> str:
        stream = self.model.stream(messages, options)
        deltas: list[str] = []
        try:
            async for delta in stream:
                try:
                    await emit(sink, delta)
                except Exception as e:
                    logger.error(f"Streaming sink failed after {len(deltas)} delta(s): {e}")
                    raise StreamingSinkError(f"Streaming sink failed: {e}", cause=e) from e
                deltas.append(delta)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return "".join(deltas)
