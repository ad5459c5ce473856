"""
Generation component for RAG pipelines.

Builds a bounded context from ranked search hits and answers questions
with a local model served by Ollama, whole or as a fragment stream.
"""

__version__ = "1.0.0"

from .config import GenerationConfig
from .context_builder import BLOCK_SEPARATOR, ContextBuilder, build_context, format_block
from .generator import GenerationProvider, OllamaGenerator
from .prompts import RAG_SYSTEM_PROMPT, build_prompt

__all__ = [
    "__version__",
    "GenerationConfig",
    "ContextBuilder",
    "build_context",
    "format_block",
    "BLOCK_SEPARATOR",
    "GenerationProvider",
    "OllamaGenerator",
    "RAG_SYSTEM_PROMPT",
    "build_prompt",
]
