"""
Embedding Providers - Local embedding generation

Maps text to fixed-dimension, unit-length vectors. The same provider is
used for document chunks and for queries, so cosine similarity in the
vector index reduces to a dot product.

Design:
- Explicitly owned service object with lifecycle load() -> ready -> dispose()
- OllamaEmbedder wraps ollama.Client.embed() against a local Ollama server
- Every returned vector is normalized with numpy before it leaves here
- Deterministic for a fixed model: same text -> same vector

Usage:
    from vector_store.embedder import OllamaEmbedder

    embedder = OllamaEmbedder(model="all-minilm")
    embedder.load()
    vector = embedder.embed("An example passage")
    embedder.dispose()
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np
import ollama

from localbot.exceptions import EmbeddingError, InvalidInput, ModelUnavailable

logger = logging.getLogger(__name__)


def normalize(vector: Sequence[float]) -> list[float]:
    """
    Scale a vector to unit length.

    Raises:
        EmbeddingError: If the vector is empty, zero or not finite.
    """
    array = np.asarray(vector, dtype=np.float64)
    if array.ndim != 1 or array.size == 0:
        raise EmbeddingError("Embedding must be a non-empty 1-d vector")
    norm = float(np.linalg.norm(array))
    if norm == 0.0 or not np.isfinite(norm):
        raise EmbeddingError("Cannot normalize a zero or non-finite embedding")
    return (array / norm).tolist()


class EmbeddingProvider(ABC):
    """Base class for text -> unit vector providers."""

    def __init__(self) -> None:
        self._ready = False
        self._dimensions: Optional[int] = None

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def dimensions(self) -> Optional[int]:
        """Embedding dimensions (known after the first embed call)."""
        return self._dimensions

    def load(self) -> None:
        """Make the model usable. Raises ModelUnavailable on failure."""
        self._load()
        self._ready = True

    def dispose(self) -> None:
        self._ready = False

    def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Raises:
            InvalidInput: If the text is empty.
            ModelUnavailable: If the model is not loaded.
            EmbeddingError: If the backend fails for this text.
        """
        if not text or not text.strip():
            raise InvalidInput("Cannot embed empty text")
        if not self._ready:
            raise ModelUnavailable("Embedding model not initialized", model=self.model_name)
        vector = normalize(self._embed(text))
        self._dimensions = len(vector)
        return vector

    def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed several texts, one at a time, in order."""
        return [self.embed(text) for text in texts]

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    @abstractmethod
    def _load(self) -> None:
        ...

    @abstractmethod
    def _embed(self, text: str) -> Sequence[float]:
        ...


class OllamaEmbedder(EmbeddingProvider):
    """
    Generates text embeddings using a local Ollama model.

    load() verifies that Ollama is running and the model has been pulled;
    without that, every embed() call raises ModelUnavailable.
    """

    def __init__(
        self,
        model: str = "all-minilm",
        base_url: str = "http://localhost:11434",
        client: Optional[ollama.Client] = None,
    ):
        """
        Initialize the embedder.

        Args:
            model: Ollama model name for embeddings.
            base_url: Ollama API base URL.
            client: Optional pre-built client (for testing).
        """
        super().__init__()
        self.model = model
        self.base_url = base_url
        self._client = client or ollama.Client(host=base_url)

    @property
    def model_name(self) -> str:
        return self.model

    def _load(self) -> None:
        health = self.health_check()
        if not health["healthy"]:
            raise ModelUnavailable(
                "Embedding model failed to load",
                model=self.model,
                details=str(health["error"]),
            )
        logger.info("Embedding model '%s' ready at %s", self.model, self.base_url)

    def _embed(self, text: str) -> Sequence[float]:
        try:
            response = self._client.embed(model=self.model, input=text)
            return response["embeddings"][0]
        except ollama.ResponseError as e:
            if e.status_code == 404:
                raise ModelUnavailable(
                    "Embedding model not found", model=self.model, details=str(e)
                ) from e
            raise EmbeddingError(
                f"Ollama embedding failed for model '{self.model}'", original_error=e
            ) from e
        except Exception as e:
            if is_connection_error(e):
                raise ModelUnavailable(
                    f"Cannot connect to Ollama at {self.base_url}. "
                    f"Is Ollama running? Start it with: ollama serve",
                    model=self.model,
                ) from e
            raise EmbeddingError("Embedding generation failed", original_error=e) from e

    def health_check(self) -> dict[str, bool | str]:
        """Check if Ollama is running and the embedding model is available."""
        return check_ollama_model(self._client, self.model)


def is_connection_error(error: Exception) -> bool:
    """True for "Ollama is not running" style failures."""
    return (
        isinstance(error, ConnectionError)
        or "Connect" in type(error).__name__
        or "refused" in str(error).lower()
    )


def check_ollama_model(client: ollama.Client, model: str) -> dict[str, bool | str]:
    """
    Check if Ollama is running and a model has been pulled.

    Returns:
        Dict with 'healthy' (bool), 'ollama_running' (bool),
        'model_available' (bool), and 'error' (str, if any).
    """
    result = {
        "healthy": False,
        "ollama_running": False,
        "model_available": False,
        "model": model,
        "error": "",
    }

    try:
        models = client.list()
        result["ollama_running"] = True

        model_names = [m.model for m in models.models]
        # "all-minilm" matches "all-minilm:latest"
        result["model_available"] = any(
            m.startswith(model) for m in model_names
        )

        if not result["model_available"]:
            result["error"] = (
                f"Model '{model}' not found. "
                f"Available: {model_names}. "
                f"Pull it with: ollama pull {model}"
            )
        else:
            result["healthy"] = True

    except Exception as e:
        result["error"] = f"Cannot connect to Ollama: {e}"

    return result
