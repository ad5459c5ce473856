"""Tests for pipeline.app — HTTP API with stub models."""

import json
import time

import pytest
from fastapi.testclient import TestClient

from chunking.token_counter import count_words
from localbot.exceptions import ModelUnavailable
from pipeline.app import create_app
from pipeline.config import PipelineConfig
from pipeline.documents import DocumentRegistry
from pipeline.service import RagService
from vector_store.index import LocalVectorIndex

from conftest import FakeGenerator, StubEmbedder


class BrokenGenerator(FakeGenerator):
    def _load(self) -> None:
        raise ModelUnavailable("Generation model failed to load", model=self.model_name)


def _service(tmp_path, generator=None) -> RagService:
    config = PipelineConfig(data_dir=str(tmp_path), chunk_size=5, chunk_overlap=1, top_k=3)
    return RagService(
        config=config,
        embedder=StubEmbedder(),
        index=LocalVectorIndex(),
        generator=generator or FakeGenerator(),
        registry=DocumentRegistry(),
        token_counter=count_words,
    )


@pytest.fixture
def client(tmp_path):
    with TestClient(create_app(service=_service(tmp_path))) as test_client:
        yield test_client


def _wait_for_status(client, document_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        record = client.get(f"/documents/{document_id}").json()
        if record["status"] in {"indexed", "error"}:
            return record
        time.sleep(0.02)
    raise AssertionError(f"document {document_id} still processing")


def _upload(client, name, text):
    response = client.post("/documents", json={"name": name, "text": text})
    assert response.status_code == 202
    return _wait_for_status(client, response.json()["id"])


class TestHealth:
    def test_ready(self, client):
        health = client.get("/health").json()
        assert health["status"] == "ok"
        assert health["index_initialized"] is True
        assert health["generation_model"]["ready"] is True

    def test_degraded_without_generation_model(self, tmp_path):
        app = create_app(service=_service(tmp_path, generator=BrokenGenerator()))
        with TestClient(app) as client:
            health = client.get("/health").json()
            assert health["status"] == "degraded"
            assert health["embedding_model"]["ready"] is True

            response = client.post("/chat", json={"question": "anyone there?"})
            assert response.status_code == 503
            assert response.json()["kind"] == "model_unavailable"

            # Search does not need the generator
            assert client.post("/search", json={"query": "anyone"}).status_code == 200


class TestDocuments:
    def test_upload_and_list(self, client):
        record = _upload(client, "cats.txt", "cats purr and sleep all day long")
        assert record["status"] == "indexed"
        assert record["chunk_count"] == 2

        listed = client.get("/documents").json()
        assert [d["name"] for d in listed] == ["cats.txt"]

    def test_blank_upload_ends_in_error(self, client):
        record = _upload(client, "blank.txt", "   ")
        assert record["status"] == "error"
        assert "No text content" in record["error_message"]

    def test_file_upload(self, client, tmp_path):
        path = tmp_path / "dogs.md"
        path.write_text("dogs bark and fetch sticks", encoding="utf-8")
        response = client.post("/documents/file", json={"path": str(path)})
        assert response.status_code == 202
        record = _wait_for_status(client, response.json()["id"])
        assert record["name"] == "dogs.md"
        assert record["status"] == "indexed"

    def test_unknown_document(self, client):
        response = client.get("/documents/missing")
        assert response.status_code == 404
        assert response.json()["kind"] == "document_not_found"

    def test_delete(self, client):
        record = _upload(client, "cats.txt", "cats purr and sleep all day long")
        response = client.delete(f"/documents/{record['id']}")
        assert response.status_code == 200
        assert response.json()["removed_chunks"] == 2
        assert client.get(f"/documents/{record['id']}").status_code == 404
        assert client.delete(f"/documents/{record['id']}").json()["removed_chunks"] == 0


class TestChat:
    def test_answer_with_sources(self, client):
        _upload(client, "cats.txt", "cats purr and sleep all day long")
        response = client.post("/chat", json={"question": "do cats purr", "session_id": "abc"})
        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "LocalBOT answer"
        assert body["session_id"] == "abc"
        assert body["sources"][0]["document_name"] == "cats.txt"

    def test_empty_question(self, client):
        response = client.post("/chat", json={"question": "  "})
        assert response.status_code == 400
        assert response.json()["kind"] == "invalid_input"

    def test_stream(self, client):
        _upload(client, "cats.txt", "cats purr and sleep all day long")
        response = client.post("/chat/stream", json={"question": "do cats purr"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/x-ndjson")

        events = [json.loads(line) for line in response.text.splitlines()]
        tokens = [e["text"] for e in events if e["type"] == "token"]
        assert "".join(tokens) == "LocalBOT answer"
        assert events[-1]["type"] == "sources"
        sources = events[-1]["sources"]
        assert sources[0]["document_name"] == "cats.txt"
        assert sources == client.post("/chat", json={"question": "do cats purr"}).json()["sources"]

    def test_stream_empty_question(self, client):
        response = client.post("/chat/stream", json={"question": ""})
        assert response.status_code == 400


class TestSearch:
    def test_search(self, client):
        _upload(client, "cats.txt", "cats purr and sleep all day long")
        _upload(client, "dogs.txt", "dogs bark and fetch sticks")
        hits = client.post("/search", json={"query": "dogs bark", "limit": 1}).json()
        assert len(hits) == 1
        assert hits[0]["document_name"] == "dogs.txt"

    def test_limit_validated(self, client):
        assert client.post("/search", json={"query": "x", "limit": 51}).status_code == 422
