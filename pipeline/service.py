"""
RAG Service - the engine facade used by the HTTP app and the CLI

Owns one embedder, one vector index, one generator and the document
registry, and wires them into the ingestion and query orchestrators.

Usage:
    async with RagService(PipelineConfig.from_env()) as service:
        await service.ingest_document("doc-1", "notes.txt", text)
        result = await service.answer_question("What do the notes say?")
        print(result.answer)
"""

import asyncio
from typing import Any, AsyncIterator, Callable, Optional

from chunking.token_counter import TokenCounter
from generation.context_builder import ContextBuilder
from generation.generator import GenerationProvider, OllamaGenerator
from localbot.exceptions import ModelUnavailable, format_error_chain
from localbot.logging_config import get_logger
from vector_store import create_index
from vector_store.embedder import EmbeddingProvider, OllamaEmbedder
from vector_store.index import VectorIndex
from vector_store.models import SearchHit

from .config import PipelineConfig
from .documents import DocumentRegistry
from .ingestion import IngestionOrchestrator
from .models import DocumentRecord, QueryAnswer, Source
from .query import QueryOrchestrator

logger = get_logger(__name__)


class RagService:
    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        embedder: Optional[EmbeddingProvider] = None,
        index: Optional[VectorIndex] = None,
        generator: Optional[GenerationProvider] = None,
        registry: Optional[DocumentRegistry] = None,
        token_counter: Optional[TokenCounter] = None,
    ):
        self.config = config or PipelineConfig()
        self.embedder = embedder or OllamaEmbedder(
            model=self.config.embed_model,
            base_url=self.config.ollama_base_url,
        )
        self.index = index or create_index(self.config.store)
        self.generator = generator or OllamaGenerator(self.config.generation)
        self.registry = registry or DocumentRegistry(self.config.registry_dir)

        self.ingestion = IngestionOrchestrator(
            self.embedder, self.index, self.registry, self.config.chunking
        )
        self.query = QueryOrchestrator(
            self.embedder,
            self.index,
            self.generator,
            ContextBuilder(self.config.generation.max_context_tokens, token_counter),
            top_k=self.config.top_k,
        )

    async def __aenter__(self) -> "RagService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def start(self) -> None:
        """
        Open the index and load both models.

        A model that fails to load is logged and left unloaded; calls that
        need it raise ModelUnavailable until the service is restarted.
        Index failures propagate.
        """
        await asyncio.to_thread(self.index.ensure_initialized)
        for provider in (self.embedder, self.generator):
            try:
                await asyncio.to_thread(provider.load)
            except ModelUnavailable as e:
                logger.error("Model unavailable: %s", e)
            except Exception as e:
                logger.error(
                    "Failed to load model %s:\n%s", provider.model_name, format_error_chain(e)
                )

    async def close(self) -> None:
        await self.ingestion.wait_for_pending()
        await asyncio.to_thread(self.generator.dispose)
        self.embedder.dispose()
        logger.info("RAG service closed")

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def ingest_document(self, document_id: str, document_name: str, raw_text: str) -> int:
        return await self.ingestion.ingest_document(document_id, document_name, raw_text)

    def submit_document(
        self,
        document_name: str,
        raw_text: str,
        document_id: Optional[str] = None,
    ) -> DocumentRecord:
        return self.ingestion.submit_text(document_name, raw_text, document_id)

    def submit_file(self, path: str, document_name: Optional[str] = None) -> DocumentRecord:
        return self.ingestion.submit_file(path, document_name)

    async def delete_document_index(self, document_id: str) -> int:
        return await self.ingestion.delete_document(document_id)

    def list_documents(self) -> list[DocumentRecord]:
        return self.registry.list()

    def get_document(self, document_id: str) -> DocumentRecord:
        return self.registry.require(document_id)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def answer_question(
        self,
        question: str,
        session_id: Optional[str] = None,
        on_token: Optional[Callable[[str], Any]] = None,
    ) -> QueryAnswer:
        return await self.query.answer(question, on_token=on_token, session_id=session_id)

    async def answer_stream(self, question: str) -> tuple[list[Source], AsyncIterator[str]]:
        return await self.query.answer_stream(question)

    async def search(self, query: str, limit: int = 10) -> list[SearchHit]:
        return await self.query.search(query, limit)

    def health(self) -> dict[str, Any]:
        initialized = self.index.is_initialized()
        models_ready = self.embedder.ready and self.generator.ready
        return {
            "status": "ok" if initialized and models_ready else "degraded",
            "index_initialized": initialized,
            "indexed_chunks": self.index.count() if initialized else 0,
            "embedding_model": {"name": self.embedder.model_name, "ready": self.embedder.ready},
            "generation_model": {"name": self.generator.model_name, "ready": self.generator.ready},
            "documents": len(self.registry.list()),
            "pending_ingestions": self.ingestion.pending,
        }
