"""
Chunking Module - Overlapping word-window chunking for RAG

Splits extracted plain text into fixed-size word windows that overlap,
so that passages spanning a boundary stay retrievable.

Quick Start:
    from chunking import TextChunker, ChunkingConfig

    chunker = TextChunker(ChunkingConfig(chunk_size=500, overlap=50))
    chunks = chunker.chunk(text)
"""

__version__ = "1.0.0"

from .chunker import TextChunker, chunk_text
from .models import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    Chunk,
    ChunkingConfig,
    ChunkingResult,
)
from .token_counter import TokenCounter, count_tokens, count_words

__all__ = [
    "__version__",
    "TextChunker",
    "chunk_text",
    "Chunk",
    "ChunkingConfig",
    "ChunkingResult",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CHUNK_OVERLAP",
    "TokenCounter",
    "count_tokens",
    "count_words",
]
