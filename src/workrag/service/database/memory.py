"""In-process document store.

Exact nearest-neighbour search over a dict; suitable for tests, local
development and small single-process deployments.
"""

import logging
import threading
from dataclasses import replace

from workrag.constants import MAX_CHUNKS_LISTED
from workrag.rag.chunking import ScoredIndex, cosine_similarity, top_k
from workrag.rag.visibility import (
    OrgVisibility,
    OwnershipResolver,
    VisibilityRule,
    member_visibility,
)
from workrag.service.database.base import (
    build_chunks,
    check_query_embedding,
    check_upsert,
    clamp_store_limit,
    to_hit,
)
from workrag.service.database.models import DocumentChunk, IndexedDocument, SimilarityHit

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """Simple in-memory storage.

    Records keep their insertion position when they are replaced, so ties in
    similarity are broken by the order in which keys were first indexed.
    """

    def __init__(self, ownership: OwnershipResolver | None = None) -> None:
        self.ownership = ownership
        self._documents: dict[tuple[str, str, str], IndexedDocument] = {}
        self._chunks: dict[tuple[str, str], list[DocumentChunk]] = {}
        self._lock = threading.Lock()

    def upsert(self, doc: IndexedDocument, allow_unsearchable: bool = False) -> None:
        check_upsert(doc, allow_unsearchable)
        stored = replace(doc, embedding=list(doc.embedding) if doc.embedding else None)
        with self._lock:
            self._documents[doc.key] = stored

    def delete_by_source(self, org_id: str, source_type: str, source_id: str) -> None:
        with self._lock:
            self._documents.pop((org_id, source_type, source_id), None)

    def get(self, org_id: str, source_type: str, source_id: str) -> IndexedDocument | None:
        with self._lock:
            return self._documents.get((org_id, source_type, source_id))

    def list_documents(self, org_id: str, source_type: str | None = None) -> list[IndexedDocument]:
        with self._lock:
            return [
                doc
                for doc in self._documents.values()
                if doc.org_id == org_id and (source_type is None or doc.source_type == source_type)
            ]

    def count_documents(self, org_id: str) -> int:
        return len(self.list_documents(org_id))

    def find_similar(
        self,
        org_id: str,
        query_embedding: list[float],
        allowed_source_types: list[str] | None = None,
        limit: int | None = None,
    ) -> list[SimilarityHit]:
        rule = OrgVisibility(tuple(allowed_source_types or ()))
        return self._search(org_id, query_embedding, rule, limit)

    def find_similar_for_role(
        self,
        org_id: str,
        user_id: str,
        query_embedding: list[float],
        limit: int | None = None,
    ) -> list[SimilarityHit]:
        rule = member_visibility(self.ownership, org_id, user_id)
        return self._search(org_id, query_embedding, rule, limit)

    def _search(
        self,
        org_id: str,
        query_embedding: list[float],
        rule: VisibilityRule,
        limit: int | None,
    ) -> list[SimilarityHit]:
        check_query_embedding(query_embedding)
        limit = clamp_store_limit(limit)

        with self._lock:
            candidates = [
                doc
                for doc in self._documents.values()
                if doc.org_id == org_id
                and doc.searchable
                and rule.allows(doc.source_type, doc.source_id)
            ]

        scored = [
            ScoredIndex(index=i, score=cosine_similarity(query_embedding, doc.embedding))
            for i, doc in enumerate(candidates)
        ]
        hits = [to_hit(candidates[s.index], s.score) for s in top_k(scored, limit)]
        logger.debug(f"🔍 In-memory search over {len(candidates)} candidates -> {len(hits)} hits")
        return hits

    def store_chunks(
        self,
        org_id: str,
        document_id: str,
        chunks: list[str],
        embeddings: list[list[float]] | None = None,
    ) -> list[DocumentChunk]:
        if not chunks:
            return []
        built = build_chunks(org_id, document_id, chunks, embeddings)
        # One assignment, so readers see all chunks or none
        with self._lock:
            self._chunks[(org_id, document_id)] = built
        return built

    def list_chunks(
        self, org_id: str, document_id: str, limit: int = MAX_CHUNKS_LISTED
    ) -> list[DocumentChunk]:
        if limit <= 0 or limit > 2 * MAX_CHUNKS_LISTED:
            limit = MAX_CHUNKS_LISTED
        with self._lock:
            return list(self._chunks.get((org_id, document_id), []))[:limit]

    def delete_chunks(self, org_id: str, document_id: str) -> None:
        with self._lock:
            self._chunks.pop((org_id, document_id), None)
