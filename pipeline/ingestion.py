"""
Ingestion Orchestrator - raw text in, indexed chunks out

For each document: chunk the text, embed every chunk, insert it into the
vector index, and keep the registry status current
(processing -> indexed | error).

A chunk that fails to embed or store is logged and skipped; the document
still ends up indexed with the chunks that made it. Only a document with
no text, or one where every chunk failed, ends in the error state.

Model and index calls block, so they run in worker threads; the event
loop stays free for queries while a document is being ingested.
"""

import asyncio
from pathlib import Path
from typing import Optional

from chunking.chunker import TextChunker
from chunking.models import ChunkingConfig
from localbot.exceptions import (
    EmbeddingError,
    ExtractionFailed,
    IngestionError,
    ModelUnavailable,
    RagError,
    StorageIOError,
    format_error_chain,
)
from localbot.logging_config import get_logger
from vector_store.embedder import EmbeddingProvider
from vector_store.index import VectorIndex
from vector_store.models import IndexedItem

from .documents import DocumentRegistry
from .extraction import extract_text
from .models import DocumentRecord

logger = get_logger(__name__)

# Failures of a single chunk that do not abort the document
SKIPPABLE_CHUNK_ERRORS = (EmbeddingError, ModelUnavailable, StorageIOError)


class IngestionOrchestrator:
    def __init__(
        self,
        embedder: EmbeddingProvider,
        index: VectorIndex,
        registry: DocumentRegistry,
        chunking_config: Optional[ChunkingConfig] = None,
    ):
        self.embedder = embedder
        self.index = index
        self.registry = registry
        self.chunker = TextChunker(chunking_config)
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def ingest_document(self, document_id: str, document_name: str, raw_text: str) -> int:
        """
        Chunk, embed and index one document.

        Returns:
            Number of chunks that were indexed.

        Raises:
            ExtractionFailed: If the text yields no chunks.
            IngestionError: If no chunk could be indexed.
        """
        if self.registry.get(document_id) is None:
            self.registry.create(document_name, document_id=document_id)
        return await self._index_document(document_id, document_name, raw_text)

    async def _index_document(self, document_id: str, document_name: str, raw_text: str) -> int:
        """Index a document whose record already exists; a deleted record stops it."""
        if self.registry.mark_processing(document_id) is None:
            logger.info("Document %s was deleted before indexing, skipping", document_id)
            return 0

        # Re-ingestion replaces the chunks of the previous version
        replaced = await asyncio.to_thread(self.index.delete_by_document, document_id)
        if replaced:
            logger.info("Replacing %d existing chunks of %s", replaced, document_id)

        chunking = self.chunker.chunk_document(document_id, raw_text, document_name)
        if not chunking.chunks:
            error = ExtractionFailed()
            self.registry.mark_error(document_id, error.message)
            logger.error("Document %s (%s): %s", document_id, document_name, error.message)
            raise error

        total = chunking.total_chunks
        indexed = 0
        for chunk in chunking.chunks:
            try:
                vector = await asyncio.to_thread(self.embedder.embed, chunk.content)
                item = IndexedItem.for_chunk(
                    vector,
                    document_id=document_id,
                    document_name=document_name,
                    content=chunk.content,
                    chunk_index=chunk.index,
                )
                await asyncio.to_thread(self.index.insert, item)
                indexed += 1
            except SKIPPABLE_CHUNK_ERRORS as e:
                logger.warning(
                    "Skipping chunk %d/%d of %s: %s", chunk.index + 1, total, document_name, e
                )
            except Exception as e:
                if self.registry.mark_error(document_id, str(e) or type(e).__name__) is None:
                    await asyncio.to_thread(self.index.delete_by_document, document_id)
                raise

        if indexed == 0:
            error = IngestionError(document_id, total_chunks=total)
            self.registry.mark_error(document_id, error.message)
            logger.error("Document %s (%s): %s", document_id, document_name, error.message)
            raise error

        if self.registry.mark_indexed(document_id, indexed, chunking) is None:
            # Deleted while we were indexing: drop what we just inserted
            logger.info("Document %s was deleted during ingestion, removing its chunks", document_id)
            await asyncio.to_thread(self.index.delete_by_document, document_id)
            return indexed

        logger.info("Indexed %d/%d chunks for %s", indexed, total, document_name)
        return indexed

    def submit_text(
        self,
        document_name: str,
        raw_text: str,
        document_id: Optional[str] = None,
    ) -> DocumentRecord:
        """Register a document and index it in the background."""
        record = self.registry.create(document_name, document_id=document_id)
        self._spawn(self._ingest_text(record, raw_text), record)
        return record

    def submit_file(self, path: str, document_name: Optional[str] = None) -> DocumentRecord:
        """Register a file and extract + index it in the background."""
        record = self.registry.create(document_name or Path(path).name)
        self._spawn(self._ingest_file(record, path), record)
        return record

    async def delete_document(self, document_id: str) -> int:
        """
        Remove a document's chunks and its registry record.

        Index first, registry second: an interruption in between leaves
        orphaned chunks rather than a record pointing at nothing.
        Deleting an unknown document is a no-op.
        """
        removed = await asyncio.to_thread(self.index.delete_by_document, document_id)
        self.registry.delete(document_id)
        logger.info("Deleted document %s (%d chunks)", document_id, removed)
        return removed

    async def wait_for_pending(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _ingest_text(self, record: DocumentRecord, raw_text: str) -> int:
        return await self._index_document(record.id, record.name, raw_text)

    async def _ingest_file(self, record: DocumentRecord, path: str) -> int:
        try:
            raw_text = await asyncio.to_thread(extract_text, path)
        except ExtractionFailed as e:
            self.registry.mark_error(record.id, e.message)
            raise
        return await self._index_document(record.id, record.name, raw_text)

    def _spawn(self, coro, record: DocumentRecord) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=f"ingest-{record.id}")
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_task_done(t, record))
        return task

    def _on_task_done(self, task: asyncio.Task, record: DocumentRecord) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.registry.mark_error(record.id, "Ingestion cancelled")
            logger.warning("Ingestion of %s cancelled", record.name)
            return
        error = task.exception()
        if error is None:
            return
        if isinstance(error, RagError):
            # Status was already recorded by ingest_document / _ingest_file
            logger.error("Ingestion of %s failed: %s", record.name, error)
            return
        self.registry.mark_error(record.id, str(error) or type(error).__name__)
        logger.error("Ingestion of %s crashed:\n%s", record.name, format_error_chain(error))
