"""
LocalBot - shared building blocks for the local RAG engine.

Holds the exception hierarchy and logging setup used by the
chunking, vector_store, generation and pipeline packages.
"""

__version__ = "1.0.0"

from .exceptions import (
    DocumentNotFound,
    EmbeddingError,
    ExtractionFailed,
    GenerationError,
    IndexUninitialized,
    IngestionError,
    InvalidInput,
    ModelUnavailable,
    RagError,
    StorageIOError,
    VectorIndexError,
    error_kind,
    format_error_chain,
)
from .logging_config import get_logger, setup_logging

__all__ = [
    "__version__",
    "RagError",
    "InvalidInput",
    "ModelUnavailable",
    "VectorIndexError",
    "IndexUninitialized",
    "StorageIOError",
    "EmbeddingError",
    "GenerationError",
    "ExtractionFailed",
    "IngestionError",
    "DocumentNotFound",
    "error_kind",
    "format_error_chain",
    "get_logger",
    "setup_logging",
]
