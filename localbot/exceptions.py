"""
Custom Exceptions for the local RAG engine.

Every component raises typed errors from this hierarchy so that the
orchestrators can decide which failures to downgrade (a single chunk
failing to embed) and which to propagate (everything else), and so the
HTTP layer can map each kind to a status code.

Exception Hierarchy:
    RagError (base)
    ├── InvalidInput
    ├── ModelUnavailable
    ├── VectorIndexError
    │   ├── IndexUninitialized
    │   └── StorageIOError
    ├── EmbeddingError
    ├── GenerationError
    ├── ExtractionFailed
    ├── IngestionError
    └── DocumentNotFound

Usage:
    from localbot.exceptions import InvalidInput, ModelUnavailable, RagError

    try:
        answer = await service.answer_question(question)
    except ModelUnavailable as e:
        print(f"No model loaded: {e}")
    except RagError as e:
        print(f"Query failed ({error_kind(e)}): {e}")
"""

from __future__ import annotations

import re
from typing import Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class RagError(Exception):
    """
    Base exception for all RAG engine errors.

    Attributes:
        message: Human-readable error description
        details: Additional technical details (optional)
    """

    def __init__(
        self,
        message: str = "A RAG engine error occurred",
        details: Optional[str] = None,
    ):
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


class InvalidInput(RagError):
    """Raised for empty questions/queries and malformed vectors or configs."""

    def __init__(self, message: str = "Invalid input", details: Optional[str] = None):
        super().__init__(message, details)


class ModelUnavailable(RagError):
    """
    Raised when the embedding or generation model is not loaded.

    This is a recoverable, user-actionable condition: document management
    and search stay usable when only the generation model is missing.

    Attributes:
        model: Name of the missing model (if known)
    """

    def __init__(
        self,
        message: str = "Model is not available",
        model: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.model = model
        if model:
            message = f"{message} [{model}]"
        super().__init__(message, details)


# =============================================================================
# VECTOR INDEX ERRORS
# =============================================================================


class VectorIndexError(RagError):
    """Base class for vector index errors."""

    pass


class IndexUninitialized(VectorIndexError):
    """Raised when the index is used before ensure_initialized()."""

    def __init__(self, message: str = "Vector index is not initialized"):
        super().__init__(message)


class StorageIOError(VectorIndexError):
    """
    Raised when index persistence fails (disk full, permission denied, ...).

    Attributes:
        path: The file that could not be read or written
        original_error: The underlying OSError
    """

    def __init__(
        self,
        message: str = "Vector index storage failure",
        path: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.path = path
        self.original_error = original_error
        if path:
            message = f"{message} [{path}]"
        details = str(original_error) if original_error else None
        super().__init__(message, details)


# =============================================================================
# MODEL CALL ERRORS
# =============================================================================


class EmbeddingError(RagError):
    """Raised when the embedding backend fails for a specific text."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(message, details)


class GenerationError(RagError):
    """Raised when the generation backend fails mid-call."""

    def __init__(
        self,
        message: str = "Text generation failed",
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(message, details)


# =============================================================================
# DOCUMENT ERRORS
# =============================================================================


class ExtractionFailed(RagError):
    """
    Raised when a document yields no usable text.

    Surfaces as a per-document ``error`` status, never as a crash.

    Attributes:
        path: Source file (if the text came from a file)
    """

    def __init__(
        self,
        message: str = "No text content found in document",
        path: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.path = path
        if path:
            message = f"{message} [{path}]"
        super().__init__(message, details)


class IngestionError(RagError):
    """
    Raised when not a single chunk of a document could be indexed.

    Attributes:
        document_id: The document that failed
        total_chunks: Number of chunks that were attempted
    """

    def __init__(
        self,
        document_id: str,
        total_chunks: int = 0,
        message: Optional[str] = None,
    ):
        self.document_id = document_id
        self.total_chunks = total_chunks
        msg = message or f"None of the {total_chunks} chunks could be indexed"
        super().__init__(msg)


class DocumentNotFound(RagError):
    """Raised when a document id is unknown to the registry."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


_KIND_OVERRIDES = {
    StorageIOError: "storage_io",
}


def error_kind(error: Exception) -> str:
    """
    Return the snake_case error kind used in API and CLI error payloads.

    ModelUnavailable -> "model_unavailable", StorageIOError -> "storage_io".
    Errors from outside the hierarchy are reported as "internal".
    """
    if not isinstance(error, RagError):
        return "internal"
    for cls in type(error).__mro__:
        if cls in _KIND_OVERRIDES:
            return _KIND_OVERRIDES[cls]
    return re.sub(r"(?<!^)(?=[A-Z])", "_", type(error).__name__).lower()


def format_error_chain(error: Exception) -> str:
    """
    Format an exception and its chain for logging.

    Returns a multi-line string showing the error hierarchy.
    """
    lines = []
    current = error
    depth = 0

    while current is not None:
        prefix = "  " * depth + ("└─ " if depth > 0 else "")
        lines.append(f"{prefix}{type(current).__name__}: {current}")

        if getattr(current, "original_error", None):
            current = current.original_error
            depth += 1
        elif current.__cause__:
            current = current.__cause__
            depth += 1
        else:
            break

    return "\n".join(lines)
