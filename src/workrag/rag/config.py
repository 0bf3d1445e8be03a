"""Runtime settings for the RAG subsystem."""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from workrag.constants import (
    DEFAULT_GENERATION_BACKENDS,
    DEFAULT_GENERATION_TIMEOUT_SECONDS,
    DEFAULT_INDEXING_WORKERS,
    get_embedding_model,
    get_embedding_service,
)
from workrag.llm import parse_backend_names

# Load environment variables
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    seconds = float(value)
    # 0 or a negative value disables the per-call timeout
    return seconds if seconds > 0 else None


@dataclass
class RAGSettings:
    """Settings for embedding, generation and background indexing.

    Attributes:
        enabled: Master switch; when False the Indexer no-ops and queries are refused
        embedding_service: Provider used for embeddings ("gemini" or "ollama")
        embedding_model: Embedding model name
        generation_backends: Backend names in the order they are tried
        generation_timeout: Per-backend call timeout in seconds, or None for no limit
        indexing_workers: Threads used by the background dispatcher
    """

    enabled: bool = True
    embedding_service: str = "gemini"
    embedding_model: str | None = None
    generation_backends: list[str] = field(
        default_factory=lambda: parse_backend_names(DEFAULT_GENERATION_BACKENDS)
    )
    generation_timeout: float | None = DEFAULT_GENERATION_TIMEOUT_SECONDS
    indexing_workers: int = DEFAULT_INDEXING_WORKERS

    @classmethod
    def from_env(cls) -> "RAGSettings":
        """Build settings from environment variables."""
        service = get_embedding_service()
        return cls(
            enabled=_env_flag("RAG_ENABLED", True),
            embedding_service=service,
            embedding_model=get_embedding_model(service),
            generation_backends=parse_backend_names(
                os.getenv("GENERATION_BACKENDS", DEFAULT_GENERATION_BACKENDS)
            ),
            generation_timeout=_env_float(
                "GENERATION_TIMEOUT_SECONDS", DEFAULT_GENERATION_TIMEOUT_SECONDS
            ),
            indexing_workers=max(1, int(os.getenv("INDEXING_WORKERS", str(DEFAULT_INDEXING_WORKERS)))),
        )
