"""
Data Models for the RAG pipeline surfaces

Document status records, answers with their sources, and the request
bodies accepted by the HTTP app.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from vector_store.models import SearchHit


class DocumentStatus(str, Enum):
    """Ingestion state machine: pending -> processing -> indexed | error."""
    PENDING = "pending"
    PROCESSING = "processing"
    INDEXED = "indexed"
    ERROR = "error"


class DocumentRecord(BaseModel):
    id: str
    name: str
    status: DocumentStatus = DocumentStatus.PENDING
    chunk_count: int = 0
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Source(BaseModel):
    """A retrieved passage an answer was conditioned on."""
    document_id: str
    document_name: str
    content: str
    score: float
    chunk_index: int

    @classmethod
    def from_hit(cls, hit: SearchHit) -> "Source":
        return cls(
            document_id=hit.document_id,
            document_name=hit.document_name,
            content=hit.content,
            score=hit.score,
            chunk_index=hit.chunk_index,
        )


class QueryAnswer(BaseModel):
    answer: str
    sources: list[Source] = Field(default_factory=list)
    session_id: Optional[str] = None


# -----------------------------------------------------------------------------
# HTTP request bodies
# -----------------------------------------------------------------------------


class DocumentUploadRequest(BaseModel):
    name: str = Field(..., min_length=1)
    text: str
    document_id: Optional[str] = None


class FileUploadRequest(BaseModel):
    path: str = Field(..., min_length=1)
    name: Optional[str] = None


class ChatRequest(BaseModel):
    question: str
    session_id: Optional[str] = None


class SearchRequest(BaseModel):
    query: str
    limit: int = Field(10, ge=1, le=50)
