"""Tests for pipeline.service and pipeline.config."""

import asyncio

import pytest

from chunking.token_counter import count_words
from localbot.exceptions import DocumentNotFound, ModelUnavailable
from pipeline.config import PipelineConfig
from pipeline.documents import DocumentRegistry
from pipeline.models import DocumentStatus
from pipeline.service import RagService
from vector_store.index import LocalVectorIndex

from conftest import FakeGenerator, StubEmbedder


class UnreachableEmbedder(StubEmbedder):
    def _load(self) -> None:
        raise ModelUnavailable("Embedding model failed to load", model=self.model_name)


def _service(tmp_path, embedder=None) -> RagService:
    config = PipelineConfig(data_dir=str(tmp_path), chunk_size=5, chunk_overlap=1)
    return RagService(
        config,
        embedder=embedder or StubEmbedder(),
        index=LocalVectorIndex(config.store.persist_directory),
        generator=FakeGenerator(),
        registry=DocumentRegistry(config.registry_dir),
        token_counter=count_words,
    )


class TestRagService:
    def test_end_to_end(self, tmp_path):
        async def scenario():
            async with _service(tmp_path) as service:
                count = await service.ingest_document("doc-1", "cats.txt", "cats purr and sleep all day long")
                answer = await service.answer_question("do cats purr", session_id="s")
                hits = await service.search("cats", limit=5)
                return count, answer, hits, service.health()

        count, answer, hits, health = asyncio.run(scenario())
        assert count == 2
        assert answer.answer == "LocalBOT answer"
        assert answer.sources[0].document_id == "doc-1"
        assert len(hits) == 2
        assert health["indexed_chunks"] == 2
        assert health["documents"] == 1

    def test_state_survives_restart(self, tmp_path):
        async def first():
            async with _service(tmp_path) as service:
                await service.ingest_document("doc-1", "cats.txt", "cats purr and sleep all day long")

        async def second():
            async with _service(tmp_path) as service:
                return service.get_document("doc-1"), await service.search("cats purr")

        asyncio.run(first())
        record, hits = asyncio.run(second())
        assert record.status == DocumentStatus.INDEXED
        assert hits[0].document_name == "cats.txt"

    def test_start_survives_missing_model(self, tmp_path):
        async def scenario():
            async with _service(tmp_path, embedder=UnreachableEmbedder()) as service:
                health = service.health()
                with pytest.raises(ModelUnavailable):
                    await service.search("cats")
                return health

        health = asyncio.run(scenario())
        assert health["status"] == "degraded"
        assert health["embedding_model"]["ready"] is False
        assert health["generation_model"]["ready"] is True

    def test_close_waits_for_background_ingestion(self, tmp_path):
        async def scenario():
            service = _service(tmp_path)
            await service.start()
            record = service.submit_document("cats.txt", "cats purr and sleep all day long")
            await service.close()
            return service, record

        service, record = asyncio.run(scenario())
        assert service.get_document(record.id).status == DocumentStatus.INDEXED
        assert not service.generator.ready

    def test_delete_and_lookup(self, tmp_path):
        async def scenario():
            async with _service(tmp_path) as service:
                await service.ingest_document("doc-1", "cats.txt", "cats purr")
                removed = await service.delete_document_index("doc-1")
                return service, removed

        service, removed = asyncio.run(scenario())
        assert removed == 1
        with pytest.raises(DocumentNotFound):
            service.get_document("doc-1")


class TestPipelineConfig:
    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOCALBOT_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("LOCALBOT_CHUNK_SIZE", "200")
        monkeypatch.setenv("LOCALBOT_CHUNK_OVERLAP", "20")
        monkeypatch.setenv("LOCALBOT_TOP_K", "5")
        monkeypatch.setenv("LOCALBOT_INDEX_BACKEND", "chroma")
        monkeypatch.setenv("LOCALBOT_EMBED_MODEL", "nomic-embed-text")

        config = PipelineConfig.from_env()
        assert config.chunking.chunk_size == 200
        assert config.chunking.overlap == 20
        assert config.top_k == 5
        assert config.store.backend == "chroma"
        assert config.store.embedding_model == "nomic-embed-text"
        assert config.store.persist_directory.startswith(str(tmp_path))

    def test_invalid_chunking_falls_back(self):
        config = PipelineConfig(chunk_size=0, chunk_overlap=0)
        assert config.chunking.chunk_size == 500
        assert config.chunking.overlap == 50
