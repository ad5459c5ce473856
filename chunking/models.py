"""
Data Models for the Chunking Pipeline

Defines:
1. ChunkingConfig - Window size and overlap (in words)
2. Chunk - A single word-window segment with advisory character offsets
3. ChunkingResult - All chunks of one document, with save/load

Design Principles:
- Pydantic v2 for validation and serialization
- Chunks are immutable once produced
- Offsets are Unicode codepoint positions in the whitespace-normalized
  text, used for citations and debugging only

Usage:
    config = ChunkingConfig(chunk_size=500, overlap=50)
    chunks = TextChunker(config).chunk(text)
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 50


class ChunkingConfig(BaseModel):
    """
    Configuration for the word-window chunker.

    Invalid values are not rejected: a non-positive chunk_size falls back
    to the defaults (500 / 50), a negative overlap to the default overlap.
    """
    chunk_size: int = Field(
        DEFAULT_CHUNK_SIZE,
        description="Number of words per chunk window",
    )
    overlap: int = Field(
        DEFAULT_CHUNK_OVERLAP,
        description="Number of words shared by consecutive windows",
    )

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        # A non-positive window size invalidates the whole config, so both
        # values fall back together; a negative overlap alone falls back alone.
        if not isinstance(data, dict):
            return data
        size = data.get("chunk_size")
        overlap = data.get("overlap")
        if size is not None and int(size) <= 0:
            return {**data, "chunk_size": DEFAULT_CHUNK_SIZE, "overlap": DEFAULT_CHUNK_OVERLAP}
        if overlap is not None and int(overlap) < 0:
            return {**data, "overlap": DEFAULT_CHUNK_OVERLAP}
        return data

    @property
    def step(self) -> int:
        """Words the window start advances per chunk (always >= 1)."""
        return max(self.chunk_size - self.overlap, 1)


class Chunk(BaseModel):
    """A bounded, overlapping segment of a document's extracted text."""
    model_config = ConfigDict(frozen=True)

    content: str = Field(
        ...,
        description="Chunk words joined by single spaces",
        min_length=1,
    )
    index: int = Field(
        ...,
        description="Position of this chunk within the document (0-indexed)",
        ge=0,
    )
    start_char: int = Field(
        ...,
        description="Advisory start offset (codepoints)",
        ge=0,
    )
    end_char: int = Field(
        ...,
        description="Advisory end offset (codepoints, exclusive)",
        ge=0,
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ChunkingResult(BaseModel):
    """All chunks produced for one document."""
    document_id: str = Field(
        ...,
        description="Unique document identifier",
    )
    document_name: str = Field(
        "",
        description="Display name of the document (usually the filename)",
    )
    config: ChunkingConfig = Field(
        default_factory=ChunkingConfig,
        description="Configuration used for chunking",
    )
    chunks: list[Chunk] = Field(
        default_factory=list,
        description="Chunks in document order",
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When chunking was performed",
    )

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    def save(self, path: str) -> None:
        """Save chunking result to a JSON file."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: str) -> "ChunkingResult":
        """Load chunking result from a JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)
