"""
Generation Providers - Local causal LM behind a small, explicit API

Produces an answer for a system prompt, a question and an optional
retrieval context, either in one piece or as a stream of text fragments.

Design:
- Explicitly owned service object: load() -> ready -> dispose()
- One in-flight generation at a time. Each call runs inside a session
  that holds the generation lock and closes the backend response stream
  on every exit path (normal return, exception, or the consumer closing
  the fragment iterator early).
- Streaming is a plain iterator of fragments: the caller pulls until
  exhaustion, and stops (cancels) by closing it.

Usage:
    from generation import GenerationConfig, OllamaGenerator

    generator = OllamaGenerator(GenerationConfig())
    generator.load()
    answer = generator.complete(RAG_SYSTEM_PROMPT, "What is X?", context)
    for fragment in generator.stream(RAG_SYSTEM_PROMPT, "What is X?", context):
        print(fragment, end="")
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import closing, contextmanager
from typing import Any, Callable, Iterator, Optional

import ollama

from localbot.exceptions import GenerationError, InvalidInput, ModelUnavailable
from vector_store.embedder import check_ollama_model, is_connection_error

from .config import GenerationConfig
from .prompts import build_prompt

logger = logging.getLogger(__name__)


class GenerationProvider(ABC):
    """Base class for local text generation backends."""

    def __init__(self) -> None:
        self._ready = False
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    @abstractmethod
    def model_name(self) -> str:
        ...

    def load(self) -> None:
        """Make the model usable. Raises ModelUnavailable on failure."""
        self._load()
        self._ready = True

    def dispose(self) -> None:
        # Wait for an in-flight call to finish before tearing down.
        with self._lock:
            self._ready = False

    def complete(self, system_prompt: str, question: str, context: str = "") -> str:
        """Generate the full answer in one call."""
        messages = self._messages(system_prompt, question, context)
        with self._session():
            return self._complete(messages)

    def stream(self, system_prompt: str, question: str, context: str = "") -> Iterator[str]:
        """
        Generate the answer as text fragments, in generation order.

        Validation happens here, eagerly; the session starts with the
        first fragment pulled and ends when the iterator is exhausted or
        closed.
        """
        messages = self._messages(system_prompt, question, context)
        self._require_ready()
        return self._stream_session(messages)

    def complete_stream(
        self,
        system_prompt: str,
        question: str,
        context: str = "",
        on_token: Optional[Callable[[str], Any]] = None,
    ) -> str:
        """Stream the answer into on_token, then return it assembled."""
        parts: list[str] = []
        with closing(self.stream(system_prompt, question, context)) as fragments:
            for fragment in fragments:
                if on_token is not None:
                    on_token(fragment)
                parts.append(fragment)
        return "".join(parts)

    @contextmanager
    def _session(self) -> Iterator[None]:
        self._require_ready()
        with self._lock:
            # dispose() may have won the race for the lock
            self._require_ready()
            yield

    def _stream_session(self, messages: list[dict[str, str]]) -> Iterator[str]:
        with self._session():
            with closing(self._stream(messages)) as fragments:
                yield from fragments

    def _messages(self, system_prompt: str, question: str, context: str) -> list[dict[str, str]]:
        if not question or not question.strip():
            raise InvalidInput("Question must not be empty")
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": build_prompt(question, context)})
        return messages

    def _require_ready(self) -> None:
        if not self._ready:
            raise ModelUnavailable(
                "LLM not initialized. Load a local generation model first",
                model=self.model_name,
            )

    @abstractmethod
    def _load(self) -> None:
        ...

    @abstractmethod
    def _complete(self, messages: list[dict[str, str]]) -> str:
        ...

    @abstractmethod
    def _stream(self, messages: list[dict[str, str]]) -> Iterator[str]:
        ...


class OllamaGenerator(GenerationProvider):
    """Chat generation against a model served by a local Ollama instance."""

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        client: Optional[ollama.Client] = None,
    ):
        super().__init__()
        self.config = config or GenerationConfig()
        self._client = client or ollama.Client(host=self.config.ollama_base_url)

    @property
    def model_name(self) -> str:
        return self.config.ollama_model

    def health_check(self) -> dict[str, bool | str]:
        return check_ollama_model(self._client, self.config.ollama_model)

    def _load(self) -> None:
        health = self.health_check()
        if not health["healthy"]:
            raise ModelUnavailable(
                "Generation model failed to load",
                model=self.config.ollama_model,
                details=str(health["error"]),
            )
        logger.info("Generation model '%s' ready", self.config.ollama_model)

    def _options(self) -> dict[str, Any]:
        return {
            "temperature": self.config.temperature,
            "num_predict": self.config.output_tokens,
            "num_ctx": self.config.context_window,
        }

    def _complete(self, messages: list[dict[str, str]]) -> str:
        try:
            response = self._client.chat(
                model=self.config.ollama_model,
                messages=messages,
                stream=False,
                options=self._options(),
            )
        except Exception as e:
            raise self._translate(e) from e
        return response["message"]["content"] or ""

    def _stream(self, messages: list[dict[str, str]]) -> Iterator[str]:
        try:
            parts = self._client.chat(
                model=self.config.ollama_model,
                messages=messages,
                stream=True,
                options=self._options(),
            )
        except Exception as e:
            raise self._translate(e) from e

        try:
            for part in parts:
                text = part["message"]["content"]
                if text:
                    yield text
        except Exception as e:
            raise self._translate(e) from e
        finally:
            close = getattr(parts, "close", None)
            if close is not None:
                close()

    def _translate(self, error: Exception) -> Exception:
        if isinstance(error, ollama.ResponseError) and error.status_code == 404:
            return ModelUnavailable(
                "Generation model not found",
                model=self.config.ollama_model,
                details=str(error),
            )
        if is_connection_error(error):
            return ModelUnavailable(
                f"Cannot connect to Ollama at {self.config.ollama_base_url}",
                model=self.config.ollama_model,
            )
        return GenerationError(
            f"Generation failed for model '{self.config.ollama_model}'",
            original_error=error,
        )
