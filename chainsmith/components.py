"""
Component factory.

Centralises the construction of models, memory, chains and agents from
settings, so applications and tests share one wiring path instead of
copying config fields into constructors by hand.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

from chainsmith.agents.conversational import ConversationalAgent
from chainsmith.agents.executor import AgentExecutor
from chainsmith.agents.tool_calling import ToolCallingAgent
from chainsmith.chains.conversational import ConversationalChain
from chainsmith.chains.retrieval import ConversationalRetrievalChain, Retriever
from chainsmith.config.settings import Settings
from chainsmith.llm.base import ChatModel
from chainsmith.llm.litellm_model import LiteLLMChatModel
from chainsmith.memory import BaseMemory, build_memory
from chainsmith.tools.base import Tool


class ChainComponents:
    """
    Factory for building chainsmith components from settings.

    The model is created once and shared by everything the factory builds.
    Memory is created fresh on every call: one conversation, one memory.

    Example::

        factory = ChainComponents(load_settings())
        executor = factory.create_agent_executor(tools=[search_tool])
        answer = await executor.run({"input": "What's the weather in Lisbon?"})
    """

    def __init__(self, settings: Settings, model: ChatModel | None = None):
        self.settings = settings
        self._model = model

    @property
    def model(self) -> ChatModel:
        """The shared chat model, a LiteLLMChatModel unless one was injected."""
        if self._model is None:
            self._model = LiteLLMChatModel(self.settings.llm)
        return self._model

    def create_memory(self) -> BaseMemory:
        """Create a memory of the configured kind."""
        return build_memory(self.settings.memory)

    def create_conversational_chain(
        self,
        memory: BaseMemory | None = None,
    ) -> ConversationalChain:
        """Create a ConversationalChain with settings-driven memory."""
        if memory is None:
            memory = self.create_memory()
        return ConversationalChain(self.model, memory=memory)

    def create_retrieval_chain(
        self,
        retriever: Retriever,
        memory: BaseMemory | None = None,
        return_source_documents: bool = False,
    ) -> ConversationalRetrievalChain:
        """Create a ConversationalRetrievalChain over ``retriever``."""
        return ConversationalRetrievalChain.from_model(
            self.model,
            retriever,
            memory=memory if memory is not None else self.create_memory(),
            return_source_documents=return_source_documents,
        )

    def create_agent_executor(
        self,
        tools: Sequence[Tool],
        kind: Literal["conversational", "tool_calling"] = "conversational",
        memory: BaseMemory | None = None,
        return_intermediate_steps: bool = False,
    ) -> AgentExecutor:
        """
        Create an AgentExecutor with bounds from ``settings.agent``.

        Args:
            tools: Tools the agent may use
            kind: "conversational" (JSON responses, any model) or
                "tool_calling" (provider-native tool calls)
            memory: Conversation memory; a new settings-driven one if omitted
            return_intermediate_steps: Also return the scratchpad
        """
        if kind == "tool_calling":
            agent = ToolCallingAgent(self.model, tools)
        else:
            agent = ConversationalAgent(self.model, tools)
        return AgentExecutor.from_settings(
            agent,
            self.settings.agent,
            memory=memory if memory is not None else self.create_memory(),
            return_intermediate_steps=return_intermediate_steps,
        )
