from dataclasses import dataclass, field
import os
from pathlib import Path

from chunking.models import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, ChunkingConfig
from generation.config import GenerationConfig
from vector_store.models import StoreConfig


@dataclass
class PipelineConfig:
    data_dir: str = "data"
    ollama_base_url: str = "http://localhost:11434"
    embed_model: str = "all-minilm"
    index_backend: str = "local"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    top_k: int = 3
    log_level: str = "INFO"
    log_file: str = ""
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        def _int(name: str, default: int) -> int:
            value = os.environ.get(name)
            return int(value) if value else default

        generation = GenerationConfig.from_env()
        return cls(
            data_dir=os.environ.get("LOCALBOT_DATA_DIR", cls.data_dir),
            ollama_base_url=generation.ollama_base_url,
            embed_model=os.environ.get("LOCALBOT_EMBED_MODEL", cls.embed_model),
            index_backend=os.environ.get("LOCALBOT_INDEX_BACKEND", cls.index_backend),
            chunk_size=_int("LOCALBOT_CHUNK_SIZE", cls.chunk_size),
            chunk_overlap=_int("LOCALBOT_CHUNK_OVERLAP", cls.chunk_overlap),
            top_k=_int("LOCALBOT_TOP_K", cls.top_k),
            log_level=os.environ.get("LOCALBOT_LOG_LEVEL", cls.log_level),
            log_file=os.environ.get("LOCALBOT_LOG_FILE", cls.log_file),
            generation=generation,
        )

    @property
    def chunking(self) -> ChunkingConfig:
        return ChunkingConfig(chunk_size=self.chunk_size, overlap=self.chunk_overlap)

    @property
    def store(self) -> StoreConfig:
        return StoreConfig(
            backend=self.index_backend,
            persist_directory=str(Path(self.data_dir) / "vector_index"),
            embedding_model=self.embed_model,
            ollama_base_url=self.ollama_base_url,
        )

    @property
    def registry_dir(self) -> str:
        return str(Path(self.data_dir) / "documents")
