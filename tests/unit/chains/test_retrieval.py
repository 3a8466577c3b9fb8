"""
Unit tests for the retrieval chains.

Tests cover:
- VectorStoreRetriever k and score threshold
- StuffDocumentsChain document joining and prompt validation
- ConversationalRetrievalChain condensing, retrieval, memory and outputs
"""

from collections.abc import Sequence

import pytest

from chainsmith.chains.llm import LLMChain
from chainsmith.chains.retrieval import (
    ConversationalRetrievalChain,
    Retriever,
    StuffDocumentsChain,
    VectorStore,
    VectorStoreRetriever,
)
from chainsmith.errors import ChainError
from chainsmith.llm.options import CallOptions, StreamBuffer
from chainsmith.memory.buffer import SimpleMemory
from chainsmith.prompts.template import PromptTemplate
from chainsmith.schemas.documents import Document


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _ListStore(VectorStore):
    """Store that returns its documents in insertion order, ignoring the query."""

    def __init__(self, documents: Sequence[Document] = ()):
        self.documents = list(documents)
        self.queries: list[tuple[str, int]] = []

    async def add_documents(self, documents: Sequence[Document]) -> list[str]:
        self.documents.extend(documents)
        return [str(i) for i in range(len(self.documents) - len(documents), len(self.documents))]

    async def similarity_search(self, query: str, k: int = 4) -> list[Document]:
        self.queries.append((query, k))
        return self.documents[:k]


class _FailingRetriever(Retriever):
    async def get_relevant_documents(self, query: str) -> list[Document]:
        raise ConnectionError("vector store unreachable")


@pytest.fixture
def paris_store():
    return _ListStore(
        [
            Document(text="Paris is the capital of France.", score=0.9),
            Document(text="Paris has about 2.1 million inhabitants.", score=0.7),
            Document(text="Lyon is in France.", score=0.2),
        ]
    )


class TestVectorStoreRetriever:
    """Tests for VectorStoreRetriever."""

    @pytest.mark.asyncio
    async def test_passes_k(self, paris_store):
        retriever = VectorStoreRetriever(paris_store, k=2)
        documents = await retriever.get_relevant_documents("paris")
        assert len(documents) == 2
        assert paris_store.queries == [("paris", 2)]

    @pytest.mark.asyncio
    async def test_score_threshold(self, paris_store):
        await paris_store.add_documents([Document(text="unscored")])
        retriever = VectorStoreRetriever(paris_store, k=10, score_threshold=0.5)

        documents = await retriever.get_relevant_documents("paris")

        assert [d.text for d in documents] == [
            "Paris is the capital of France.",
            "Paris has about 2.1 million inhabitants.",
            "unscored",
        ]

    def test_rejects_zero_k(self, paris_store):
        with pytest.raises(ValueError):
            VectorStoreRetriever(paris_store, k=0)


class TestStuffDocumentsChain:
    """Tests for StuffDocumentsChain."""

    @pytest.mark.asyncio
    async def test_documents_joined_into_context(self, make_model):
        model = make_model(["Paris."])
        chain = StuffDocumentsChain.for_question_answering(model)

        outputs = await chain.invoke(
            {
                "input_documents": [Document(text="Doc one."), Document(text="Doc two.")],
                "question": "Capital?",
            }
        )

        assert outputs == {"text": "Paris."}
        prompt = model.last_messages()[0].content
        assert "Doc one.\n\nDoc two." in prompt
        assert "Question: Capital?" in prompt

    def test_input_keys(self, make_model):
        chain = StuffDocumentsChain.for_question_answering(make_model())
        assert chain.input_keys == ("input_documents", "question")

    def test_prompt_without_document_slot(self, make_model):
        llm_chain = LLMChain(PromptTemplate("Answer {question}"), make_model())
        with pytest.raises(ValueError, match="context"):
            StuffDocumentsChain(llm_chain)


class TestConversationalRetrievalChain:
    """Tests for ConversationalRetrievalChain."""

    @pytest.mark.asyncio
    async def test_first_turn_skips_condensing(self, make_model, paris_store):
        model = make_model(["Paris is the capital."])
        chain = ConversationalRetrievalChain.from_model(
            model, VectorStoreRetriever(paris_store, k=2), memory=SimpleMemory()
        )

        outputs = await chain.invoke({"question": "What is the capital of France?"})

        assert outputs == {
            "answer": "Paris is the capital.",
            "generated_question": "What is the capital of France?",
        }
        assert model.call_count == 1
        assert paris_store.queries == [("What is the capital of France?", 2)]

    @pytest.mark.asyncio
    async def test_follow_up_is_condensed(self, make_model, paris_store):
        model = make_model(
            [
                "Paris is the capital.",
                "  What is the population of Paris?  ",
                "About 2.1 million.",
            ]
        )
        memory = SimpleMemory()
        chain = ConversationalRetrievalChain.from_model(
            model, VectorStoreRetriever(paris_store), memory=memory, return_source_documents=True
        )

        await chain.invoke({"question": "What is the capital of France?"})
        outputs = await chain.invoke({"question": "How many people live there?"})

        assert model.call_count == 3
        condense_prompt = model.calls[1][0][0].content
        assert "Human: What is the capital of France?\nAI: Paris is the capital." in condense_prompt
        assert "Follow Up Input: How many people live there?" in condense_prompt
        assert outputs["generated_question"] == "What is the population of Paris?"
        assert outputs["answer"] == "About 2.1 million."
        assert len(outputs["source_documents"]) == 3
        assert paris_store.queries[-1][0] == "What is the population of Paris?"
        # Memory stores what the user actually asked
        history = await memory.load()
        assert history[2].content == "How many people live there?"

    @pytest.mark.asyncio
    async def test_condense_step_is_not_streamed(self, make_model, paris_store):
        model = make_model(["standalone question"], deltas=["Ans", "wer"])
        memory = SimpleMemory()
        await memory.save("earlier", "reply")
        chain = ConversationalRetrievalChain.from_model(model, VectorStoreRetriever(paris_store), memory=memory)
        buffer = StreamBuffer()

        outputs = await chain.invoke({"question": "follow up"}, CallOptions(streaming_sink=buffer))

        assert buffer.text == "Answer"
        assert outputs["answer"] == "Answer"
        assert model.call_count == 1
        assert len(model.stream_calls) == 1

    def test_output_keys(self, make_model, paris_store):
        chain = ConversationalRetrievalChain.from_model(
            make_model(), VectorStoreRetriever(paris_store), rephrase_question=False
        )
        assert chain.output_keys == ("answer",)

    @pytest.mark.asyncio
    async def test_retriever_failure(self, make_model):
        memory = SimpleMemory()
        chain = ConversationalRetrievalChain.from_model(make_model(["x"]), _FailingRetriever(), memory=memory)

        with pytest.raises(ChainError, match="Retrieval failed") as exc_info:
            await chain.invoke({"question": "anything"})

        assert isinstance(exc_info.value.cause, ConnectionError)
        assert await memory.load() == []
