"""Document storage for the RAG index.

This package provides a unified interface over the storage backends:
- Configuration management (RavenDBConfig)
- Models (IndexedDocument, DocumentChunk, SimilarityHit)
- InMemoryDocumentStore for tests and single-process use
- RavenDocumentStore backed by a RavenDB vector index
- Database admin helpers (create_document_store, create_database, ...)

Usage:
    from workrag.service.database import (
        InMemoryDocumentStore,
        RavenDocumentStore,
        create_store,
    )
"""

# Re-export public API
from workrag.rag.visibility import OwnershipResolver
from workrag.service.database.base import DocumentStore, clamp_store_limit
from workrag.service.database.config import RavenDBConfig
from workrag.service.database.memory import InMemoryDocumentStore
from workrag.service.database.models import (
    DocumentChunk,
    IndexedDocument,
    SimilarityHit,
    validate_source_type,
)
from workrag.service.database.operations import (
    create_database,
    create_document_store,
    database_exists,
    ensure_index_exists,
)
from workrag.service.database.storage import (
    RavenDocumentStore,
    RavenOwnershipResolver,
    build_search_query,
    document_key,
)


def create_store(backend: str | None = None, ownership: OwnershipResolver | None = None) -> DocumentStore:
    """Create the configured document store.

    Args:
        backend: "ravendb" or "memory" (defaults to DOCUMENT_STORE env)
        ownership: Ownership resolver for member searches. For RavenDB it
            defaults to a RavenOwnershipResolver on the same database.

    Returns:
        DocumentStore: A ready-to-use store
    """
    backend = backend or RavenDBConfig.get_backend()

    if backend == "memory":
        return InMemoryDocumentStore(ownership=ownership)

    if backend == "ravendb":
        raven = create_document_store()
        if ownership is None:
            ownership = RavenOwnershipResolver(raven)
        return RavenDocumentStore(raven, ownership=ownership)

    raise ValueError(f"Unsupported document store: {backend}")


__all__ = [
    # Config
    "RavenDBConfig",
    # Models
    "IndexedDocument",
    "DocumentChunk",
    "SimilarityHit",
    "validate_source_type",
    # Stores
    "DocumentStore",
    "InMemoryDocumentStore",
    "RavenDocumentStore",
    "RavenOwnershipResolver",
    "create_store",
    "clamp_store_limit",
    "build_search_query",
    "document_key",
    # Operations
    "create_document_store",
    "ensure_index_exists",
    "database_exists",
    "create_database",
]
