"""
Pipeline Module - ingestion and question answering over the vector index

Wires the chunker, embedder, vector index and generator into two
orchestrators, and exposes them through RagService, a FastAPI app and
the ``localbot`` command line.

Quick Start:
    import asyncio
    from pipeline import PipelineConfig, RagService

    async def main():
        async with RagService(PipelineConfig.from_env()) as service:
            await service.ingest_document("doc-1", "notes.txt", open("notes.txt").read())
            result = await service.answer_question("What is in my notes?")
            print(result.answer)

    asyncio.run(main())
"""

__version__ = "1.0.0"

from .config import PipelineConfig
from .documents import DocumentRegistry
from .extraction import extract_text
from .ingestion import IngestionOrchestrator
from .models import DocumentRecord, DocumentStatus, QueryAnswer, Source
from .query import QueryOrchestrator
from .service import RagService

__all__ = [
    "__version__",
    "PipelineConfig",
    "DocumentRegistry",
    "extract_text",
    "IngestionOrchestrator",
    "QueryOrchestrator",
    "RagService",
    "DocumentRecord",
    "DocumentStatus",
    "QueryAnswer",
    "Source",
]
