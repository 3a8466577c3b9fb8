"""
Retrieval chains.

Interfaces:
- VectorStore: where documents live. chainsmith ships no backend; adapt
  whatever store you use (Chroma, pgvector, Qdrant) to these two methods.
- Retriever: anything that maps a query to relevant documents.
- VectorStoreRetriever: a Retriever over a VectorStore with a fixed k and
  an optional score threshold.

Chains:
- StuffDocumentsChain: joins a list of documents into one ``context``
  variable and runs an LLMChain over it.
- ConversationalRetrievalChain: rephrases a follow-up question into a
  standalone one using the chat history, retrieves documents for it, and
  answers with StuffDocumentsChain.

Data flow (ConversationalRetrievalChain):
    question + memory history → condense chain (skipped if history is empty)
                                      ↓
                     standalone question → Retriever → documents
                                      ↓
              StuffDocumentsChain(documents, question) → answer → memory
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from chainsmith.chains.base import Chain
from chainsmith.chains.llm import LLMChain
from chainsmith.config.logging import get_logger
from chainsmith.errors import ChainError
from chainsmith.llm.base import ChatModel
from chainsmith.llm.options import CallOptions
from chainsmith.memory.base import BaseMemory
from chainsmith.memory.buffer import DummyMemory
from chainsmith.prompts.template import PromptTemplate, render_value
from chainsmith.schemas.documents import Document
from chainsmith.schemas.messages import get_buffer_string

logger = get_logger(__name__)

STUFF_QA_TEMPLATE = """Use the following pieces of context to answer the question at the end. If you don't know the answer, just say that you don't know, don't try to make up an answer.

{context}

Question: {question}
Helpful Answer:"""

CONDENSE_QUESTION_TEMPLATE = """Given the following conversation and a follow up question, rephrase the follow up question to be a standalone question, in its original language.

Chat History:
{chat_history}
Follow Up Input: {question}
Standalone question:"""


# ---------------------------------------------------------------------------
# Retrieval interfaces
# ---------------------------------------------------------------------------

class VectorStore(ABC):
    """Abstract base class for document stores with similarity search."""

    @abstractmethod
    async def add_documents(self, documents: Sequence[Document]) -> list[str]:
        """
        Store documents.

        Returns:
            Ids assigned to the stored documents, in input order
        """
        pass

    @abstractmethod
    async def similarity_search(self, query: str, k: int = 4) -> list[Document]:
        """
        Find the documents most similar to ``query``.

        Returns:
            At most ``k`` documents, best match first
        """
        pass


class Retriever(ABC):
    """Abstract base class for anything that can find documents for a query."""

    @abstractmethod
    async def get_relevant_documents(self, query: str) -> list[Document]:
        pass


class VectorStoreRetriever(Retriever):
    """
    Retriever backed by a VectorStore.

    Args:
        store: Store to search
        k: Number of documents to request (default: 4)
        score_threshold: Minimum similarity score. Documents without a score
            are kept. None means no filtering.
    """

    def __init__(self, store: VectorStore, k: int = 4, score_threshold: float | None = None):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.store = store
        self.k = k
        self.score_threshold = score_threshold

    async def get_relevant_documents(self, query: str) -> list[Document]:
        documents = await self.store.similarity_search(query, k=self.k)
        if self.score_threshold is not None:
            documents = [
                doc for doc in documents if doc.score is None or doc.score >= self.score_threshold
            ]
        logger.debug(
            f"Query '{query}' returned {len(documents)} document(s) "
            f"(k={self.k}, threshold={self.score_threshold})"
        )
        return documents


# ---------------------------------------------------------------------------
# Chains
# ---------------------------------------------------------------------------

class StuffDocumentsChain(Chain):
    """
    Put every document into one prompt.

    The documents under ``input_key`` are joined with ``separator`` and
    passed to the inner LLMChain as ``document_variable_name``. Every other
    input the inner chain needs (e.g. ``question``) is passed through.

    Args:
        llm_chain: Chain whose prompt has a ``document_variable_name`` slot
        input_key: Variable holding the documents (default: "input_documents")
        document_variable_name: Prompt slot for the joined text (default: "context")
        separator: Text placed between documents (default: blank line)
    """

    def __init__(
        self,
        llm_chain: LLMChain,
        input_key: str = "input_documents",
        document_variable_name: str = "context",
        separator: str = "\n\n",
    ):
        if document_variable_name not in llm_chain.input_keys:
            raise ValueError(
                f"Prompt has no '{document_variable_name}' variable for the documents"
            )
        self.llm_chain = llm_chain
        self.input_key = input_key
        self.document_variable_name = document_variable_name
        self.separator = separator

    @classmethod
    def for_question_answering(
        cls,
        model: ChatModel,
        options: CallOptions | None = None,
    ) -> StuffDocumentsChain:
        """Chain with the default QA prompt; inputs are ``input_documents`` and ``question``."""
        return cls(LLMChain(PromptTemplate(STUFF_QA_TEMPLATE), model, options=options))

    @property
    def input_keys(self) -> tuple[str, ...]:
        others = [k for k in self.llm_chain.input_keys if k != self.document_variable_name]
        return (self.input_key, *others)

    @property
    def output_keys(self) -> tuple[str, ...]:
        return self.llm_chain.output_keys

    def join_documents(self, documents: Sequence[Document | str]) -> str:
        return self.separator.join(
            doc.text if isinstance(doc, Document) else str(doc) for doc in documents
        )

    async def _call(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        documents = inputs[self.input_key]
        variables = {k: v for k, v in inputs.items() if k != self.input_key}
        variables[self.document_variable_name] = self.join_documents(documents)
        return await self.llm_chain.invoke(variables, options)


class ConversationalRetrievalChain(Chain):
    """
    Question answering over a retriever, with conversation history.

    Outputs: ``output_key`` (the answer), plus ``generated_question`` when
    ``rephrase_question`` is on, plus ``source_documents`` when
    ``return_source_documents`` is on.

    Args:
        retriever: Where documents come from
        combine_documents_chain: Answers from documents. Its inputs must be
            ``input_documents`` and ``question``.
        condense_question_chain: Rewrites a follow-up into a standalone
            question. Its inputs must be ``chat_history`` and ``question``.
        memory: Conversation memory (default: DummyMemory)
        input_key: Variable holding the question (default: "question")
        output_key: Key of the answer (default: "answer")
        rephrase_question: Condense follow-ups before retrieval (default: True)
        return_source_documents: Include retrieved documents in the outputs
    """

    def __init__(
        self,
        retriever: Retriever,
        combine_documents_chain: Chain,
        condense_question_chain: Chain,
        memory: BaseMemory | None = None,
        input_key: str = "question",
        output_key: str = "answer",
        rephrase_question: bool = True,
        return_source_documents: bool = False,
    ):
        self.retriever = retriever
        self.combine_documents_chain = combine_documents_chain
        self.condense_question_chain = condense_question_chain
        self.memory = memory if memory is not None else DummyMemory()
        self.input_key = input_key
        self._output_key = output_key
        self.rephrase_question = rephrase_question
        self.return_source_documents = return_source_documents

    @classmethod
    def from_model(
        cls,
        model: ChatModel,
        retriever: Retriever,
        memory: BaseMemory | None = None,
        **kwargs: Any,
    ) -> ConversationalRetrievalChain:
        """Build with the default condense-question and QA prompts."""
        return cls(
            retriever=retriever,
            combine_documents_chain=StuffDocumentsChain.for_question_answering(model),
            condense_question_chain=LLMChain(PromptTemplate(CONDENSE_QUESTION_TEMPLATE), model),
            memory=memory,
            **kwargs,
        )

    @property
    def input_keys(self) -> tuple[str, ...]:
        return (self.input_key,)

    @property
    def output_keys(self) -> tuple[str, ...]:
        keys = [self._output_key]
        if self.rephrase_question:
            keys.append("generated_question")
        if self.return_source_documents:
            keys.append("source_documents")
        return tuple(keys)

    async def _condense(
        self,
        question: str,
        history: list,
        options: CallOptions | None,
    ) -> str:
        if not history or not self.rephrase_question:
            return question
        # The standalone question is an intermediate result, never streamed
        quiet_options = (
            options.model_copy(update={"streaming_sink": None}) if options is not None else None
        )
        standalone = await self.condense_question_chain.run(
            {"chat_history": get_buffer_string(history), "question": question},
            quiet_options,
        )
        standalone = standalone.strip()
        logger.debug(f"Condensed '{question}' into '{standalone}'")
        return standalone or question

    async def _call(
        self,
        inputs: dict[str, Any],
        options: CallOptions | None,
    ) -> dict[str, Any]:
        question = render_value(inputs[self.input_key])
        history = await self.memory.load()

        standalone = await self._condense(question, history, options)

        try:
            documents = await self.retriever.get_relevant_documents(standalone)
        except Exception as e:
            logger.error(f"Retrieval failed: {e}")
            raise ChainError(f"Retrieval failed: {e}", cause=e) from e

        answer = await self.combine_documents_chain.run(
            {"input_documents": documents, "question": standalone},
            options,
        )

        await self.memory.save(question, answer)

        outputs: dict[str, Any] = {self._output_key: answer}
        if self.rephrase_question:
            outputs["generated_question"] = standalone
        if self.return_source_documents:
            outputs["source_documents"] = documents
        return outputs
