"""
Data Models for the Vector Store

Defines:
1. StoreConfig - Index backend, storage location and embedding model
2. ItemMetadata - The fixed four-field record stored alongside each vector
3. IndexedItem - A vector plus its metadata, as inserted into an index
4. SearchHit - A single similarity search result

Design Principles:
- Pydantic v2 for validation (consistent with chunking)
- Fixed-shape metadata: the engine only ever reads these four fields
- Scores are similarities: higher = more similar, within [-1, 1]
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class StoreConfig(BaseModel):
    """Configuration for the vector store."""
    backend: Literal["local", "chroma"] = Field(
        "local",
        description="Index implementation: exact local index or ChromaDB",
    )
    persist_directory: str = Field(
        "data/vector_index",
        description="Directory for persistent index storage",
    )
    collection_name: str = Field(
        "documents",
        description="ChromaDB collection name (chroma backend only)",
    )
    embedding_model: str = Field(
        "all-minilm",
        description="Ollama embedding model name",
    )
    ollama_base_url: str = Field(
        "http://localhost:11434",
        description="Ollama API base URL",
    )


class ItemMetadata(BaseModel):
    """Provenance of an indexed chunk."""
    model_config = ConfigDict(frozen=True)

    document_id: str = Field(
        ...,
        description="Document the chunk belongs to",
        min_length=1,
    )
    document_name: str = Field(
        "",
        description="Display name of the document",
    )
    content: str = Field(
        ...,
        description="Chunk text",
    )
    chunk_index: int = Field(
        ...,
        description="Position of the chunk within its document (0-indexed)",
        ge=0,
    )


class IndexedItem(BaseModel):
    """A vector with its metadata. The id is assigned by the index."""
    model_config = ConfigDict(frozen=True)

    vector: list[float] = Field(
        ...,
        description="Unit-normalized embedding",
        min_length=1,
    )
    metadata: ItemMetadata

    @classmethod
    def for_chunk(
        cls,
        vector: list[float],
        document_id: str,
        document_name: str,
        content: str,
        chunk_index: int,
    ) -> "IndexedItem":
        return cls(
            vector=vector,
            metadata=ItemMetadata(
                document_id=document_id,
                document_name=document_name,
                content=content,
                chunk_index=chunk_index,
            ),
        )


class SearchHit(BaseModel):
    """A single search result, ranked by similarity (best first)."""
    document_id: str
    document_name: str
    content: str
    chunk_index: int
    score: float = Field(
        ...,
        description="Cosine similarity (1 = identical direction)",
    )

    @classmethod
    def from_metadata(cls, metadata: ItemMetadata, score: float) -> "SearchHit":
        return cls(
            document_id=metadata.document_id,
            document_name=metadata.document_name,
            content=metadata.content,
            chunk_index=metadata.chunk_index,
            score=score,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
