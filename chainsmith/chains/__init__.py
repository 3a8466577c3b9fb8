"""Chains: composable units that map named inputs to named outputs."""

from chainsmith.chains.base import Chain
from chainsmith.chains.conversational import ConversationalChain, default_conversation_prompt
from chainsmith.chains.llm import LLMChain
from chainsmith.chains.retrieval import (
    CONDENSE_QUESTION_TEMPLATE,
    STUFF_QA_TEMPLATE,
    ConversationalRetrievalChain,
    Retriever,
    StuffDocumentsChain,
    VectorStore,
    VectorStoreRetriever,
)
from chainsmith.chains.sequential import SequentialChain

__all__ = [
    "CONDENSE_QUESTION_TEMPLATE",
    "STUFF_QA_TEMPLATE",
    "Chain",
    "ConversationalChain",
    "ConversationalRetrievalChain",
    "LLMChain",
    "Retriever",
    "SequentialChain",
    "StuffDocumentsChain",
    "VectorStore",
    "VectorStoreRetriever",
    "default_conversation_prompt",
]
