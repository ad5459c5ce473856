from dataclasses import dataclass
import os

from .context_builder import DEFAULT_MAX_CONTEXT_TOKENS


@dataclass
class GenerationConfig:
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:1b"
    context_window: int = 4096
    max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS
    output_tokens: int = 512
    temperature: float = 0.1

    @classmethod
    def from_env(cls) -> "GenerationConfig":
        def _int(name: str, default: int) -> int:
            value = os.environ.get(name)
            return int(value) if value else default

        def _float(name: str, default: float) -> float:
            value = os.environ.get(name)
            return float(value) if value else default

        return cls(
            ollama_base_url=os.environ.get("OLLAMA_BASE_URL", cls.ollama_base_url),
            ollama_model=os.environ.get("LOCALBOT_LLM_MODEL", cls.ollama_model),
            context_window=_int("LOCALBOT_CONTEXT_WINDOW", cls.context_window),
            max_context_tokens=_int("LOCALBOT_MAX_CONTEXT_TOKENS", cls.max_context_tokens),
            output_tokens=_int("LOCALBOT_OUTPUT_TOKENS", cls.output_tokens),
            temperature=_float("LOCALBOT_TEMPERATURE", cls.temperature),
        )
