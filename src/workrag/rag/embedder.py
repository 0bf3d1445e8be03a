"""Text embedding for indexing and retrieval."""

import logging
from typing import Protocol

from workrag.constants import MAX_EMBED_CHARS
from workrag.errors import EmbeddingUnavailable
from workrag.llm import LLMService, get_llm_service
from workrag.rag.config import RAGSettings

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    """Turns text into a fixed-length vector.

    Implementations raise ValueError for empty input and EmbeddingUnavailable
    for any backend failure. They do not retry.
    """

    def embed(self, text: str) -> list[float]: ...


class ServiceEmbedder:
    """Embedder backed by an LLM provider's ``generate_embeddings``."""

    def __init__(self, service: LLMService, model: str | None = None) -> None:
        self.service = service
        self.model = model

    def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise ValueError("text cannot be empty")

        try:
            embeddings = self.service.generate_embeddings([text[:MAX_EMBED_CHARS]], model=self.model)
        except Exception as e:
            raise EmbeddingUnavailable(f"embedding failed: {e}") from e

        if not embeddings or not embeddings[0]:
            raise EmbeddingUnavailable("no embedding returned")
        return list(embeddings[0])


def create_embedder(settings: RAGSettings | None = None) -> Embedder | None:
    """Create the configured embedder.

    Returns:
        Embedder | None: None when RAG is disabled or the provider cannot be built
    """
    if settings is None:
        settings = RAGSettings.from_env()
    if not settings.enabled:
        logger.info("ℹ️ RAG disabled; no embedder created")
        return None

    try:
        service = get_llm_service({"service": settings.embedding_service})
    except Exception as e:
        logger.warning(f"⚠️ Embedding service '{settings.embedding_service}' unavailable: {e}")
        return None

    logger.info(f"✅ Embedder ready ({settings.embedding_service}, {settings.embedding_model})")
    return ServiceEmbedder(service, model=settings.embedding_model)
