"""Low-level entry points: index, delete and query."""

import logging

from workrag.errors import EmbeddingUnavailable
from workrag.llm import get_generation_backends
from workrag.llm.base import GenerationBackend
from workrag.rag.config import RAGSettings
from workrag.rag.embedder import Embedder, create_embedder
from workrag.rag.orchestrator import GenerationOrchestrator, QueryResponse
from workrag.rag.retriever import Retriever
from workrag.service.database import (
    DocumentStore,
    IndexedDocument,
    OwnershipResolver,
    create_store,
    validate_source_type,
)

logger = logging.getLogger(__name__)


class Service:
    """Ties the store, embedder and orchestrator together.

    Example:
        service = Service(store, embedder, backends)
        service.index_document("org-1", "task", "T1", "Task: Fix login bug")
        response = await service.query("org-1", "u-1", "admin", "What is broken?")
    """

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder,
        backends: list[GenerationBackend] | None = None,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.retriever = Retriever(store, embedder)
        self.orchestrator = GenerationOrchestrator(self.retriever, backends or [], timeout=timeout)

    def index_document(
        self, org_id: str, source_type: str, source_id: str, content: str
    ) -> IndexedDocument | None:
        """Embed content and upsert it under (org, source type, source id).

        Blank content is ignored. When the embedding cannot be computed the
        record is still stored, without an embedding, so it stays listed but
        is never returned by similarity search until it is re-indexed.

        Returns:
            IndexedDocument | None: The stored record, or None for blank content

        Raises:
            InvalidDocument: If source_type is unknown
        """
        validate_source_type(source_type)
        if not content or not content.strip():
            logger.debug(f"Skipping blank {source_type} {source_id}")
            return None

        try:
            embedding = self.embedder.embed(content)
        except EmbeddingUnavailable as e:
            logger.warning(f"⚠️ Storing {source_type} {source_id} without embedding: {e}")
            embedding = None

        doc = IndexedDocument(
            org_id=org_id,
            source_type=source_type,
            source_id=source_id,
            content=content,
            embedding=embedding,
        )
        self.store.upsert(doc, allow_unsearchable=True)
        logger.info(f"📥 Indexed {source_type} {source_id} for org {org_id}")
        return doc

    def delete_document(self, org_id: str, source_type: str, source_id: str) -> None:
        self.store.delete_by_source(org_id, source_type, source_id)
        logger.info(f"🗑️  Removed {source_type} {source_id} from org {org_id}")

    async def query(self, org_id: str, user_id: str, role: str, question: str) -> QueryResponse:
        """Answer a question grounded in the organization's data.

        Raises:
            EmptyQuery: If the question is blank
            InvalidRole: If the role is unknown
        """
        return await self.orchestrator.answer(org_id, user_id, role, question)


def create_rag_service(
    settings: RAGSettings | None = None,
    store: DocumentStore | None = None,
    ownership: OwnershipResolver | None = None,
) -> Service | None:
    """Create the RAG service from environment configuration.

    Returns:
        Service | None: None when RAG is disabled or no embedder is available
    """
    if settings is None:
        settings = RAGSettings.from_env()
    if not settings.enabled:
        logger.info("ℹ️ RAG disabled (RAG_ENABLED=false)")
        return None

    embedder = create_embedder(settings)
    if embedder is None:
        logger.warning("⚠️ RAG unavailable: no embedder")
        return None

    if store is None:
        store = create_store(ownership=ownership)

    backends = get_generation_backends(settings.generation_backends)
    logger.info(f"✅ RAG service ready with backends: {[b.name for b in backends]}")
    return Service(store, embedder, backends, timeout=settings.generation_timeout)
