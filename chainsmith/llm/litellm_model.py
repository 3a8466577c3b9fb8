"""
LiteLLM-backed chat model.

The only provider adapter shipped with chainsmith. It maps chainsmith
messages and call options onto ``litellm.acompletion`` and maps the response
back onto GenerateResult.

Design decisions:
- LiteLLM gives provider abstraction for free: switching between OpenAI,
  Anthropic or a local Ollama model is a change to the ``LLM_MODEL`` string.
- Per-call options override settings field by field. Settings are the
  defaults, never the other way round.
- Provider failures are re-raised as LLMError. Rate limits, timeouts and
  5xx responses are marked retryable; everything else (bad key, bad model
  name, malformed request) is not.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from typing import Any

from litellm import acompletion

from chainsmith.config.logging import get_logger
from chainsmith.config.settings import LLMSettings
from chainsmith.errors import LLMError
from chainsmith.llm.base import ChatModel
from chainsmith.llm.models import GenerateResult, TokenUsage, ToolCall
from chainsmith.llm.options import CallOptions
from chainsmith.schemas.messages import Message

logger = get_logger(__name__)

_RETRYABLE_STATUS = {408, 409, 429, 500, 502, 503, 504}


def _is_retryable(error: BaseException) -> bool:
    if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
        return True
    return getattr(error, "status_code", None) in _RETRYABLE_STATUS


class LiteLLMChatModel(ChatModel):
    """
    ChatModel implementation on top of LiteLLM.

    Args:
        settings: LLM configuration (model, temperature, max_tokens, api_key,
            api_base, timeout)
    """

    def __init__(self, settings: LLMSettings):
        self._settings = settings

    @property
    def model_name(self) -> str:
        return self._settings.model

    def _build_kwargs(
        self,
        messages: Sequence[Message],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        call_kwargs: dict[str, Any] = {
            "model": self._settings.model,
            "messages": [m.to_provider_dict() for m in messages],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }
        # Local providers (e.g. Ollama) need no key
        if self._settings.api_key:
            call_kwargs["api_key"] = self._settings.api_key
        if self._settings.api_base:
            call_kwargs["api_base"] = self._settings.api_base
        if self._settings.timeout:
            call_kwargs["timeout"] = self._settings.timeout
        if options is not None:
            call_kwargs.update(options.sampling_kwargs())
        return call_kwargs

    async def generate(
        self,
        messages: Sequence[Message],
        options: CallOptions | None = None,
    ) -> GenerateResult:
        call_kwargs = self._build_kwargs(messages, options)
        logger.debug(f"Calling {call_kwargs['model']} with {len(messages)} message(s)")

        try:
            response = await acompletion(**call_kwargs)
        except Exception as e:
            logger.error(f"LLM API call failed: {e}")
            raise LLMError(f"LLM API call failed: {e}", cause=e, retryable=_is_retryable(e))

        assistant_message = response.choices[0].message
        tool_calls = [
            ToolCall(
                id=tool_call.id,
                name=tool_call.function.name,
                arguments=tool_call.function.arguments or "{}",
            )
            for tool_call in (assistant_message.tool_calls or [])
        ]

        usage = getattr(response, "usage", None)
        return GenerateResult(
            text=assistant_message.content or "",
            tool_calls=tool_calls,
            model=response.model or self._settings.model,
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )

    async def stream(
        self,
        messages: Sequence[Message],
        options: CallOptions | None = None,
    ) -> AsyncIterator[str]:
        call_kwargs = self._build_kwargs(messages, options)
        call_kwargs["stream"] = True
        logger.debug(f"Streaming from {call_kwargs['model']} with {len(messages)} message(s)")

        try:
            response = await acompletion(**call_kwargs)
        except Exception as e:
            logger.error(f"LLM API call failed: {e}")
            raise LLMError(f"LLM API call failed: {e}", cause=e, retryable=_is_retryable(e))

        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as e:
            logger.error(f"LLM stream failed: {e}")
            raise LLMError(f"LLM stream failed: {e}", cause=e, retryable=_is_retryable(e))
        finally:
            # Also runs when the consumer stops early and closes this generator
            close = getattr(response, "aclose", None)
            if close is not None:
                await close()
