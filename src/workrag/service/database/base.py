"""Document store protocol shared by every storage backend."""

from typing import Protocol

from workrag.constants import DEFAULT_TOP_K, MAX_CHUNKS_LISTED, MAX_STORE_LIMIT
from workrag.errors import InvalidDocument
from workrag.service.database.models import (
    DocumentChunk,
    IndexedDocument,
    SimilarityHit,
    clamp_similarity,
    validate_source_type,
)


class DocumentStore(Protocol):
    """Persistence for indexed documents and uploaded-document chunks.

    Every method is scoped by organization; no call ever returns data that
    belongs to another tenant.
    """

    def upsert(self, doc: IndexedDocument, allow_unsearchable: bool = False) -> None: ...

    def delete_by_source(self, org_id: str, source_type: str, source_id: str) -> None: ...

    def get(self, org_id: str, source_type: str, source_id: str) -> IndexedDocument | None: ...

    def list_documents(self, org_id: str, source_type: str | None = None) -> list[IndexedDocument]: ...

    def count_documents(self, org_id: str) -> int: ...

    def find_similar(
        self,
        org_id: str,
        query_embedding: list[float],
        allowed_source_types: list[str] | None = None,
        limit: int | None = None,
    ) -> list[SimilarityHit]: ...

    def find_similar_for_role(
        self,
        org_id: str,
        user_id: str,
        query_embedding: list[float],
        limit: int | None = None,
    ) -> list[SimilarityHit]: ...

    def store_chunks(
        self,
        org_id: str,
        document_id: str,
        chunks: list[str],
        embeddings: list[list[float]] | None = None,
    ) -> list[DocumentChunk]: ...

    def list_chunks(
        self, org_id: str, document_id: str, limit: int = MAX_CHUNKS_LISTED
    ) -> list[DocumentChunk]: ...

    def delete_chunks(self, org_id: str, document_id: str) -> None: ...


def clamp_store_limit(limit: int | None) -> int:
    """Clamp a similarity-search limit into [1, MAX_STORE_LIMIT], defaulting to 5."""
    if limit is None or limit <= 0:
        return DEFAULT_TOP_K
    return min(limit, MAX_STORE_LIMIT)


def check_upsert(doc: IndexedDocument, allow_unsearchable: bool) -> None:
    """Validate a document before it is written."""
    validate_source_type(doc.source_type)
    if not doc.searchable and not allow_unsearchable:
        raise InvalidDocument("embedding cannot be empty")


def check_query_embedding(query_embedding: list[float] | None) -> None:
    if not query_embedding:
        raise ValueError("query embedding cannot be empty")


def build_chunks(
    org_id: str,
    document_id: str,
    chunks: list[str],
    embeddings: list[list[float]] | None,
) -> list[DocumentChunk]:
    """Turn chunk texts (and optional embeddings) into DocumentChunk records."""
    if embeddings is not None and len(embeddings) != len(chunks):
        raise InvalidDocument(
            f"got {len(embeddings)} embeddings for {len(chunks)} chunks"
        )
    return [
        DocumentChunk(
            org_id=org_id,
            document_id=document_id,
            chunk_index=index,
            content=content,
            embedding=list(embeddings[index]) if embeddings is not None else None,
        )
        for index, content in enumerate(chunks)
    ]


def to_hit(doc: IndexedDocument, score: float) -> SimilarityHit:
    return SimilarityHit(
        source_type=doc.source_type,
        source_id=doc.source_id,
        content=doc.content,
        similarity=clamp_similarity(score),
    )
