"""
Text Chunker - Word-window chunking for the RAG pipeline

Splits extracted plain text into overlapping, fixed-size word windows.

Algorithm:
1. Split the text on whitespace into a word sequence.
2. Emit a window of chunk_size words starting at position 0.
3. Advance the window start by max(chunk_size - overlap, 1) words.
4. Stop after the first window that reaches the last word; that tail
   window may be shorter than chunk_size.
5. Character offsets accumulate the length of each chunk's joined text
   plus one separator. They approximate positions in the original
   document and are advisory only.

Usage:
    from chunking import TextChunker, ChunkingConfig

    chunker = TextChunker(ChunkingConfig(chunk_size=500, overlap=50))
    chunks = chunker.chunk(text)
"""

from typing import Optional

from .models import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    Chunk,
    ChunkingConfig,
    ChunkingResult,
)


class TextChunker:
    """Splits plain text into overlapping word windows."""

    def __init__(self, config: Optional[ChunkingConfig] = None):
        self.config = config or ChunkingConfig()

    def chunk(self, text: str) -> list[Chunk]:
        """
        Chunk a text into word windows.

        Args:
            text: Extracted plain text of one document.

        Returns:
            Chunks in document order; empty for empty/whitespace-only text.
        """
        words = (text or "").split()
        if not words:
            return []

        size = self.config.chunk_size
        step = self.config.step
        total = len(words)

        chunks: list[Chunk] = []
        start = 0
        char_pos = 0

        while start < total:
            end = min(start + size, total)
            content = " ".join(words[start:end])
            end_char = char_pos + len(content)

            chunks.append(Chunk(
                content=content,
                index=len(chunks),
                start_char=char_pos,
                end_char=end_char,
            ))

            if end >= total:
                break

            start += step
            char_pos = end_char + 1

        return chunks

    def chunk_document(
        self,
        document_id: str,
        text: str,
        document_name: str = "",
    ) -> ChunkingResult:
        """Chunk a document and wrap the chunks with its identity."""
        return ChunkingResult(
            document_id=document_id,
            document_name=document_name,
            config=self.config,
            chunks=self.chunk(text),
        )


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Chunk]:
    """Functional form of TextChunker.chunk."""
    config = ChunkingConfig(chunk_size=chunk_size, overlap=overlap)
    return TextChunker(config).chunk(text)
