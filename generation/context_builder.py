from __future__ import annotations

from typing import Optional, Sequence

from chunking.token_counter import TokenCounter, count_tokens
from vector_store.models import SearchHit

BLOCK_SEPARATOR = "\n\n---\n\n"
# Room for three full 500-word chunks at roughly 1.3 tokens per word
DEFAULT_MAX_CONTEXT_TOKENS = 2560


def format_block(position: int, hit: SearchHit) -> str:
    """Labeled context block; position is 1-based, chunk numbers too."""
    header = f"[Source {position}: {hit.document_name} (chunk {hit.chunk_index + 1})]"
    return f"{header}\n{hit.content.strip()}"


class ContextBuilder:
    """
    Formats ranked hits into a bounded prompt context.

    Hits keep the index's ranking. When the token budget runs out, the
    remaining (lowest-ranked) hits are dropped whole; a block is never cut.
    """

    def __init__(
        self,
        max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
        token_counter: Optional[TokenCounter] = None,
    ):
        self.max_context_tokens = max_context_tokens
        self.token_counter = token_counter or count_tokens

    def select(self, hits: Sequence[SearchHit]) -> list[SearchHit]:
        """The leading hits whose blocks fit the budget together."""
        separator_tokens = self.token_counter(BLOCK_SEPARATOR)
        selected: list[SearchHit] = []
        used = 0

        for position, hit in enumerate(hits, start=1):
            cost = self.token_counter(format_block(position, hit))
            if selected:
                cost += separator_tokens
            if used + cost > self.max_context_tokens:
                break
            selected.append(hit)
            used += cost

        return selected

    def build(self, hits: Sequence[SearchHit]) -> str:
        selected = self.select(hits)
        return BLOCK_SEPARATOR.join(
            format_block(position, hit) for position, hit in enumerate(selected, start=1)
        )


def build_context(hits: Sequence[SearchHit], max_context_tokens: int) -> str:
    return ContextBuilder(max_context_tokens).build(hits)
