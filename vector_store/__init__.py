"""
Vector Store Module - local embeddings + nearest-neighbor index

Embeds chunks with a local Ollama model and stores them in a persistent
vector index for semantic similarity search.

Quick Start:
    from vector_store import IndexedItem, OllamaEmbedder, StoreConfig, create_index

    embedder = OllamaEmbedder(model="all-minilm")
    embedder.load()

    index = create_index(StoreConfig(persist_directory="data/vector_index"))
    index.ensure_initialized()
    index.insert(IndexedItem.for_chunk(embedder.embed(text), "doc-1", "a.txt", text, 0))
    hits = index.search(embedder.embed("question"), k=3)
"""

__version__ = "1.0.0"

from typing import Optional

from .embedder import EmbeddingProvider, OllamaEmbedder, normalize
from .index import LocalVectorIndex, VectorIndex, unit_vector
from .models import IndexedItem, ItemMetadata, SearchHit, StoreConfig


def create_index(config: Optional[StoreConfig] = None) -> VectorIndex:
    """Build the index backend named in the config (not yet initialized)."""
    cfg = config or StoreConfig()
    if cfg.backend == "chroma":
        from .chroma_index import ChromaVectorIndex

        return ChromaVectorIndex(
            persist_directory=cfg.persist_directory,
            collection_name=cfg.collection_name,
        )
    return LocalVectorIndex(cfg.persist_directory)


__all__ = [
    "__version__",
    "EmbeddingProvider",
    "OllamaEmbedder",
    "normalize",
    "VectorIndex",
    "LocalVectorIndex",
    "unit_vector",
    "create_index",
    "IndexedItem",
    "ItemMetadata",
    "SearchHit",
    "StoreConfig",
]
