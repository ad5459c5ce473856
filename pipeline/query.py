"""
Query Orchestrator - question in, grounded answer out

Embeds the question, retrieves the top-k most similar chunks, packs as
many of them as fit into the context budget, and asks the generator for
an answer. The answer carries the chunks it was conditioned on as
sources, in rank order.
"""

import asyncio
import threading
from contextlib import aclosing, closing
from typing import Any, AsyncIterator, Callable, Optional

from generation.context_builder import ContextBuilder
from generation.generator import GenerationProvider
from generation.prompts import RAG_SYSTEM_PROMPT
from localbot.exceptions import InvalidInput
from localbot.logging_config import get_logger
from vector_store.embedder import EmbeddingProvider
from vector_store.index import VectorIndex
from vector_store.models import SearchHit

from .models import QueryAnswer, Source

logger = get_logger(__name__)

DEFAULT_TOP_K = 3
MAX_SEARCH_LIMIT = 50


class QueryOrchestrator:
    def __init__(
        self,
        embedder: EmbeddingProvider,
        index: VectorIndex,
        generator: GenerationProvider,
        context_builder: Optional[ContextBuilder] = None,
        top_k: int = DEFAULT_TOP_K,
        system_prompt: str = RAG_SYSTEM_PROMPT,
    ):
        self.embedder = embedder
        self.index = index
        self.generator = generator
        self.context_builder = context_builder or ContextBuilder()
        self.top_k = top_k
        self.system_prompt = system_prompt

    async def answer(
        self,
        question: str,
        on_token: Optional[Callable[[str], Any]] = None,
        session_id: Optional[str] = None,
    ) -> QueryAnswer:
        """
        Answer a question from the indexed documents.

        With on_token, fragments are delivered as they are generated and
        the returned answer is their concatenation.

        Raises:
            InvalidInput: If the question is empty.
            ModelUnavailable: If a model is not loaded.
        """
        _require_text(question, "Question")
        hits, context = await self.retrieve(question)

        if on_token is None:
            text = await asyncio.to_thread(
                self.generator.complete, self.system_prompt, question, context
            )
        else:
            parts = []
            async with aclosing(self._generate(question, context)) as fragments:
                async for fragment in fragments:
                    on_token(fragment)
                    parts.append(fragment)
            text = "".join(parts)

        logger.info("Answered question with %d source(s)", len(hits))
        return QueryAnswer(
            answer=text,
            sources=[Source.from_hit(hit) for hit in hits],
            session_id=session_id,
        )

    async def answer_stream(self, question: str) -> tuple[list[Source], AsyncIterator[str]]:
        """
        Retrieve for a question and start streaming its answer.

        Returns the ranked sources the answer is conditioned on and an async
        iterator of answer fragments. Closing the iterator early ends the
        generation session.
        """
        _require_text(question, "Question")
        hits, context = await self.retrieve(question)
        logger.info("Streaming answer with %d source(s)", len(hits))
        return [Source.from_hit(hit) for hit in hits], self._generate(question, context)

    async def retrieve(self, question: str) -> tuple[list[SearchHit], str]:
        """Return the hits that fit the context budget and the context built from them."""
        vector = await asyncio.to_thread(self.embedder.embed, question)
        hits = await asyncio.to_thread(self.index.search, vector, self.top_k)
        selected = self.context_builder.select(hits)
        if len(selected) < len(hits):
            logger.debug("Context budget kept %d of %d hits", len(selected), len(hits))
        return selected, self.context_builder.build(selected)

    async def search(self, query: str, limit: int = 10) -> list[SearchHit]:
        """Semantic search without generation; limit is clamped to 1..50."""
        _require_text(query, "Query")
        limit = max(1, min(limit, MAX_SEARCH_LIMIT))
        vector = await asyncio.to_thread(self.embedder.embed, query)
        return await asyncio.to_thread(self.index.search, vector, limit)

    async def _generate(self, question: str, context: str) -> AsyncIterator[str]:
        """
        Bridge the generator's blocking fragment iterator onto the event loop.

        A worker thread drains the iterator into a queue. When the consumer
        stops early, the worker is told to stop, closes the iterator (ending
        the generation session) and is awaited before returning.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        stop = threading.Event()
        fragments = self.generator.stream(self.system_prompt, question, context)

        def put(item):
            if not stop.is_set():
                loop.call_soon_threadsafe(queue.put_nowait, item)

        def pump() -> None:
            try:
                with closing(fragments):
                    for fragment in fragments:
                        if stop.is_set():
                            break
                        put((fragment, None))
            except Exception as e:
                put((None, e))
                return
            put((None, None))

        worker = asyncio.ensure_future(asyncio.to_thread(pump))
        try:
            while True:
                fragment, error = await queue.get()
                if error is not None:
                    raise error
                if fragment is None:
                    break
                yield fragment
        finally:
            stop.set()
            await worker


def _require_text(text: str, what: str) -> None:
    if not text or not text.strip():
        raise InvalidInput(f"{what} must not be empty")
