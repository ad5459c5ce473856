"""
Pytest fixtures for the LocalBOT tests.

Models are replaced by deterministic in-process stand-ins so that no test
needs a running Ollama server.
"""

import hashlib
from typing import Iterator, Sequence

import pytest

from chunking.models import ChunkingConfig
from chunking.token_counter import count_words
from generation.context_builder import ContextBuilder
from generation.generator import GenerationProvider
from localbot.exceptions import EmbeddingError
from pipeline.documents import DocumentRegistry
from pipeline.ingestion import IngestionOrchestrator
from pipeline.query import QueryOrchestrator
from vector_store.embedder import EmbeddingProvider
from vector_store.index import LocalVectorIndex


STUB_DIMENSIONS = 64


class StubEmbedder(EmbeddingProvider):
    """
    Bag-of-words hashing embedder.

    Texts sharing words get similar vectors; the same text always gets
    the same vector. Texts listed in fail_on raise EmbeddingError.
    """

    def __init__(self, fail_on: Sequence[str] = ()):
        super().__init__()
        self.fail_on = set(fail_on)
        self.calls: list[str] = []

    @property
    def model_name(self) -> str:
        return "stub-embedder"

    def _load(self) -> None:
        pass

    def _embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError(f"cannot embed {text!r}")
        vector = [0.0] * STUB_DIMENSIONS
        for word in text.lower().split():
            digest = hashlib.md5(word.encode("utf-8")).digest()
            vector[digest[0] % STUB_DIMENSIONS] += 1.0
        return vector


class FakeGenerator(GenerationProvider):
    """Answers with a fixed text, streamed as fixed fragments."""

    def __init__(self, fragments: Sequence[str] = ("Local", "BOT ", "answer")):
        super().__init__()
        self.fragments = list(fragments)
        self.messages: list[list[dict[str, str]]] = []
        self.closed_streams = 0

    @property
    def model_name(self) -> str:
        return "fake-llm"

    def _load(self) -> None:
        pass

    def _complete(self, messages: list[dict[str, str]]) -> str:
        self.messages.append(messages)
        return "".join(self.fragments)

    def _stream(self, messages: list[dict[str, str]]) -> Iterator[str]:
        self.messages.append(messages)
        try:
            yield from self.fragments
        finally:
            self.closed_streams += 1


@pytest.fixture
def embedder():
    stub = StubEmbedder()
    stub.load()
    return stub


@pytest.fixture
def generator():
    fake = FakeGenerator()
    fake.load()
    return fake


@pytest.fixture
def index():
    memory_index = LocalVectorIndex()
    memory_index.ensure_initialized()
    return memory_index


@pytest.fixture
def registry():
    return DocumentRegistry()


@pytest.fixture
def context_builder():
    return ContextBuilder(max_context_tokens=200, token_counter=count_words)


@pytest.fixture
def ingestion(embedder, index, registry):
    return IngestionOrchestrator(
        embedder, index, registry, ChunkingConfig(chunk_size=5, overlap=1)
    )


@pytest.fixture
def query(embedder, index, generator, context_builder):
    return QueryOrchestrator(embedder, index, generator, context_builder, top_k=3)
