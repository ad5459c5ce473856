"""
Token Counter used to keep retrieval context inside the model's window.

Uses tiktoken's cl100k_base encoding as a conservative stand-in for the
tokenizers of local GGUF/Ollama models: it tends to count slightly more
tokens than SentencePiece vocabularies, which leaves headroom when the
context budget is a hard limit.

Usage:
    from chunking.token_counter import count_tokens

    n = count_tokens("Some retrieved passage.")
"""

from typing import Callable

import tiktoken

TokenCounter = Callable[[str], int]

_ENCODING_NAME = "cl100k_base"
_encoder: tiktoken.Encoding | None = None


def _get_encoder() -> tiktoken.Encoding:
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding(_ENCODING_NAME)
    return _encoder


def count_tokens(text: str) -> int:
    """Return the number of tokens in ``text`` (0 for empty text)."""
    if not text:
        return 0
    return len(_get_encoder().encode(text))


def count_words(text: str) -> int:
    """Whitespace word count; a tokenizer-free TokenCounter."""
    return len((text or "").split())
