"""
Retrieved document model.

This is the only shape the retrieval chains need from a vector store: the
text to inject into a prompt, free-form metadata for citations, and an
optional similarity score. Storage format is the store's business.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """
    A piece of text returned by a retriever or stored in a vector store.

    Example:
        >>> doc = Document(
        ...     text="The Eiffel Tower is 330 metres tall.",
        ...     metadata={"source": "landmarks.md"},
        ...     score=0.91,
        ... )
    """

    text: str = Field(description="Document text content")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Source metadata")
    score: float | None = Field(
        default=None, description="Similarity score, when produced by a search"
    )

    model_config = ConfigDict(frozen=True)
