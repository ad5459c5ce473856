"""Tests for pipeline.documents — DocumentRegistry."""

import pytest

from chunking import TextChunker, ChunkingConfig
from localbot.exceptions import DocumentNotFound
from pipeline.documents import DocumentRegistry
from pipeline.models import DocumentStatus


class TestRegistry:
    def test_create_and_get(self, registry):
        record = registry.create("notes.txt")
        assert record.status == DocumentStatus.PROCESSING
        assert registry.get(record.id).name == "notes.txt"

    def test_explicit_id(self, registry):
        registry.create("notes.txt", document_id="doc-1")
        assert registry.get("doc-1") is not None

    def test_status_transitions(self, registry):
        registry.create("notes.txt", document_id="doc-1")
        indexed = registry.mark_indexed("doc-1", 4)
        assert indexed.status == DocumentStatus.INDEXED
        assert indexed.chunk_count == 4
        assert indexed.updated_at >= indexed.created_at

        failed = registry.mark_error("doc-1", "boom")
        assert failed.status == DocumentStatus.ERROR
        assert failed.error_message == "boom"

        again = registry.mark_processing("doc-1")
        assert again.status == DocumentStatus.PROCESSING
        assert again.error_message is None

    def test_update_unknown_document_is_ignored(self, registry):
        assert registry.mark_indexed("missing", 3) is None

    def test_returned_records_are_copies(self, registry):
        record = registry.create("notes.txt", document_id="doc-1")
        record.name = "changed"
        assert registry.get("doc-1").name == "notes.txt"

    def test_require(self, registry):
        with pytest.raises(DocumentNotFound):
            registry.require("missing")

    def test_list_newest_first(self, registry):
        first = registry.create("a.txt")
        second = registry.create("b.txt")
        assert [r.id for r in registry.list()][0] in {first.id, second.id}
        assert len(registry.list()) == 2

    def test_delete(self, registry):
        registry.create("notes.txt", document_id="doc-1")
        assert registry.delete("doc-1") is True
        assert registry.delete("doc-1") is False
        assert registry.get("doc-1") is None


class TestPersistentRegistry:
    def test_reload_from_disk(self, tmp_path):
        registry = DocumentRegistry(str(tmp_path / "documents"))
        registry.create("notes.txt", document_id="doc-1")
        chunking = TextChunker(ChunkingConfig(chunk_size=2, overlap=0)).chunk_document(
            "doc-1", "one two three", "notes.txt"
        )
        registry.mark_indexed("doc-1", 2, chunking)

        reloaded = DocumentRegistry(str(tmp_path / "documents"))
        record = reloaded.get("doc-1")
        assert record.status == DocumentStatus.INDEXED
        assert record.chunk_count == 2
        assert [c.content for c in reloaded.chunks("doc-1").chunks] == ["one two", "three"]

    def test_delete_removes_chunk_file(self, tmp_path):
        registry = DocumentRegistry(str(tmp_path / "documents"))
        registry.create("notes.txt", document_id="doc-1")
        chunking = TextChunker().chunk_document("doc-1", "one two three", "notes.txt")
        registry.mark_indexed("doc-1", 1, chunking)

        registry.delete("doc-1")
        assert not (tmp_path / "documents" / "chunks" / "doc-1.json").exists()
        assert DocumentRegistry(str(tmp_path / "documents")).list() == []
