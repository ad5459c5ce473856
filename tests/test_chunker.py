"""Tests for chunking.chunker — word-window chunking."""

import pytest

from chunking import ChunkingConfig, ChunkingResult, TextChunker, chunk_text
from chunking.models import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE


SEVEN_WORDS = "the quick brown fox jumps over lazy"


def _words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


def _reconstruct(chunks, step: int) -> list[str]:
    """Rebuild the word sequence from windows that advance by `step`."""
    words: list[str] = []
    for chunk in chunks:
        chunk_words = chunk.content.split()
        position = chunk.index * step
        words[position:] = chunk_words
    return words


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestChunkingConfig:
    def test_defaults(self):
        config = ChunkingConfig()
        assert config.chunk_size == DEFAULT_CHUNK_SIZE == 500
        assert config.overlap == DEFAULT_CHUNK_OVERLAP == 50
        assert config.step == 450

    def test_non_positive_size_falls_back_to_defaults(self):
        config = ChunkingConfig(chunk_size=0, overlap=0)
        assert config.chunk_size == 500
        assert config.overlap == 50

    def test_negative_overlap_falls_back(self):
        config = ChunkingConfig(chunk_size=10, overlap=-3)
        assert config.chunk_size == 10
        assert config.overlap == 50

    def test_zero_overlap_kept(self):
        config = ChunkingConfig(chunk_size=10, overlap=0)
        assert config.overlap == 0
        assert config.step == 10

    @pytest.mark.parametrize("size,overlap", [(3, 3), (3, 5), (1, 1)])
    def test_step_never_below_one(self, size, overlap):
        assert ChunkingConfig(chunk_size=size, overlap=overlap).step == 1


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------

class TestTextChunker:
    def test_seven_word_scenario(self):
        chunks = chunk_text(SEVEN_WORDS, chunk_size=3, overlap=1)
        assert [c.content for c in chunks] == [
            "the quick brown",
            "brown fox jumps",
            "jumps over lazy",
        ]
        assert [c.index for c in chunks] == [0, 1, 2]

    def test_empty_text(self):
        assert chunk_text("", 500, 50) == []

    def test_whitespace_only_text(self):
        assert chunk_text("  \n\t  ", 3, 1) == []

    def test_short_text_single_chunk(self):
        chunks = chunk_text("just four words here", 500, 50)
        assert len(chunks) == 1
        assert chunks[0].content == "just four words here"

    def test_zero_config_uses_defaults(self):
        text = _words(1000)
        assert chunk_text(text, 0, 0) == chunk_text(text, 500, 50)

    def test_default_windows_on_long_text(self):
        chunks = chunk_text(_words(1000))
        assert [len(c.content.split()) for c in chunks] == [500, 500, 100]
        assert chunks[1].content.split()[0] == "w450"

    def test_whitespace_is_normalized(self):
        chunks = chunk_text("alpha\n\nbeta\tgamma   delta", 10, 0)
        assert chunks[0].content == "alpha beta gamma delta"

    @pytest.mark.parametrize("size,overlap", [(3, 1), (4, 0), (5, 4), (2, 7)])
    def test_windows_reconstruct_word_sequence(self, size, overlap):
        text = _words(23)
        chunks = chunk_text(text, size, overlap)
        step = max(size - overlap, 1)
        assert _reconstruct(chunks, step) == text.split()
        assert all(len(c.content.split()) <= size for c in chunks)
        assert chunks[-1].content.split()[-1] == "w22"

    def test_overlap_shared_between_neighbours(self):
        chunks = chunk_text(_words(12), 5, 2)
        for left, right in zip(chunks, chunks[1:]):
            assert left.content.split()[-2:] == right.content.split()[:2]

    def test_degenerate_overlap_terminates(self):
        chunks = chunk_text(_words(6), 3, 3)
        assert [c.content for c in chunks] == ["w0 w1 w2", "w1 w2 w3", "w2 w3 w4", "w3 w4 w5"]

    def test_character_offsets_advance(self):
        chunks = chunk_text(SEVEN_WORDS, 3, 1)
        assert chunks[0].start_char == 0
        assert chunks[0].end_char == len("the quick brown")
        for previous, chunk in zip(chunks, chunks[1:]):
            assert chunk.start_char == previous.end_char + 1
            assert chunk.end_char - chunk.start_char == len(chunk.content)


class TestChunkDocument:
    def test_wraps_identity(self):
        chunker = TextChunker(ChunkingConfig(chunk_size=3, overlap=1))
        result = chunker.chunk_document("doc-1", SEVEN_WORDS, "fox.txt")
        assert result.document_id == "doc-1"
        assert result.document_name == "fox.txt"
        assert result.total_chunks == 3
        assert result.config.chunk_size == 3

    def test_save_and_load(self, tmp_path):
        chunker = TextChunker(ChunkingConfig(chunk_size=3, overlap=1))
        result = chunker.chunk_document("doc-1", SEVEN_WORDS, "fox.txt")
        path = tmp_path / "doc-1.json"
        result.save(str(path))

        loaded = ChunkingResult.load(str(path))
        assert loaded.chunks == result.chunks
        assert loaded.config == result.config
