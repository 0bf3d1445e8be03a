"""RavenDB-backed document store and ownership lookups."""

import logging
from typing import Any

from ravendb import DocumentStore

from workrag.constants import MAX_CHUNKS_LISTED
from workrag.rag.chunking import cosine_similarity
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
from workrag.service.database.operations import (
    CHUNK_COLLECTION,
    EMBEDDING_INDEX,
    INDEXED_COLLECTION,
    create_document_store,
    ensure_index_exists,
)

logger = logging.getLogger(__name__)


def document_key(org_id: str, source_type: str, source_id: str) -> str:
    """RavenDB id of an indexed document; one id per (org, type, source)."""
    return f"{INDEXED_COLLECTION}/{org_id}/{source_type}/{source_id}"


def chunk_key(org_id: str, document_id: str, chunk_index: int) -> str:
    return f"{CHUNK_COLLECTION}/{org_id}/{document_id}/{chunk_index}"


def build_search_query(
    org_id: str,
    query_embedding: list[float],
    rule: VisibilityRule,
    limit: int,
) -> tuple[str, dict[str, Any]]:
    """Compile an org-scoped, rule-filtered vector search into RQL.

    Returns:
        Tuple of (rql, parameters)
    """
    params: dict[str, Any] = {"org_id": org_id, "query_vector": query_embedding, "limit": limit}
    conditions = ["org_id = $org_id"]
    rule_clause = rule.to_rql(params)
    if rule_clause:
        conditions.append(rule_clause)
    # exact(): rank every record the filters leave, not an approximate neighbourhood
    conditions.append("exact(vector.search(embedding, $query_vector))")

    rql = (
        f"from index '{EMBEDDING_INDEX}'\n"
        f"where {' and '.join(conditions)}\n"
        "limit $limit"
    )
    return rql, params


def _run_raw_query(session, rql: str, params: dict[str, Any]) -> list[dict]:
    query = session.advanced.raw_query(rql, object_type=dict)
    for name, value in params.items():
        query = query.add_parameter(name, value)
    return list(query)


def _result_score(result: dict, query_embedding: list[float]) -> float:
    metadata = result.get("@metadata", {})
    index_score = metadata.get("@index-score")
    if index_score is not None:
        return float(index_score)
    return cosine_similarity(query_embedding, result.get("embedding") or [])


def _to_document(result: dict) -> IndexedDocument:
    return IndexedDocument(
        id=result.get("id", ""),
        org_id=result.get("org_id", ""),
        source_type=result.get("source_type", ""),
        source_id=result.get("source_id", ""),
        content=result.get("content", ""),
        embedding=result.get("embedding") or None,
    )


class RavenDocumentStore:
    """Document store backed by a RavenDB vector index.

    Document ids are derived from (org, source type, source id), so writing
    the same key twice replaces the earlier record.
    """

    def __init__(
        self,
        store: DocumentStore,
        ownership: OwnershipResolver | None = None,
        ensure_index: bool = True,
    ) -> None:
        self.store = store
        self.ownership = ownership
        if ensure_index:
            ensure_index_exists(store)

    @classmethod
    def from_config(
        cls,
        url: str | None = None,
        database: str | None = None,
        ownership: OwnershipResolver | None = None,
    ) -> "RavenDocumentStore":
        return cls(create_document_store(url, database), ownership=ownership)

    def close(self) -> None:
        self.store.close()

    def upsert(self, doc: IndexedDocument, allow_unsearchable: bool = False) -> None:
        check_upsert(doc, allow_unsearchable)
        key = document_key(*doc.key)
        with self.store.open_session() as session:
            session.store(doc, key)
            metadata = session.advanced.get_metadata_for(doc)
            metadata["@collection"] = INDEXED_COLLECTION
            session.save_changes()
        logger.debug(f"💾 Upserted {key} (searchable={doc.searchable})")

    def delete_by_source(self, org_id: str, source_type: str, source_id: str) -> None:
        key = document_key(org_id, source_type, source_id)
        with self.store.open_session() as session:
            session.delete(key)
            session.save_changes()
        logger.debug(f"🗑️  Deleted {key}")

    def get(self, org_id: str, source_type: str, source_id: str) -> IndexedDocument | None:
        with self.store.open_session() as session:
            result = session.load(document_key(org_id, source_type, source_id), dict)
        return _to_document(result) if result else None

    def list_documents(self, org_id: str, source_type: str | None = None) -> list[IndexedDocument]:
        params: dict[str, Any] = {"org_id": org_id}
        rql = f"from {INDEXED_COLLECTION} where org_id = $org_id"
        if source_type:
            params["source_type"] = source_type
            rql += " and source_type = $source_type"
        with self.store.open_session() as session:
            results = _run_raw_query(session, rql, params)
        return [_to_document(r) for r in results]

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
        rql, params = build_search_query(org_id, query_embedding, rule, clamp_store_limit(limit))

        with self.store.open_session() as session:
            results = _run_raw_query(session, rql, params)

        scored = [(_result_score(r, query_embedding), r) for r in results]
        # Stable sort keeps the server's order for equal scores
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [to_hit(_to_document(r), score) for score, r in scored]

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

        # A single save_changes call is one transaction: all chunks or none
        with self.store.open_session() as session:
            for chunk in built:
                session.store(chunk, chunk_key(org_id, document_id, chunk.chunk_index))
                metadata = session.advanced.get_metadata_for(chunk)
                metadata["@collection"] = CHUNK_COLLECTION
            session.save_changes()

        logger.info(f"💾 Stored {len(built)} chunks for document {document_id}")
        return built

    def list_chunks(
        self, org_id: str, document_id: str, limit: int = MAX_CHUNKS_LISTED
    ) -> list[DocumentChunk]:
        if limit <= 0 or limit > 2 * MAX_CHUNKS_LISTED:
            limit = MAX_CHUNKS_LISTED
        rql = (
            f"from {CHUNK_COLLECTION} "
            "where org_id = $org_id and document_id = $document_id "
            "order by chunk_index as long "
            "limit $limit"
        )
        params = {"org_id": org_id, "document_id": document_id, "limit": limit}
        with self.store.open_session() as session:
            results = _run_raw_query(session, rql, params)

        return [
            DocumentChunk(
                id=r.get("id", ""),
                org_id=r.get("org_id", org_id),
                document_id=r.get("document_id", document_id),
                chunk_index=int(r.get("chunk_index", 0)),
                content=r.get("content", ""),
                embedding=r.get("embedding") or None,
            )
            for r in results
        ]

    def delete_chunks(self, org_id: str, document_id: str) -> None:
        with self.store.open_session() as session:
            for chunk in self.list_chunks(org_id, document_id):
                session.delete(chunk_key(org_id, document_id, chunk.chunk_index))
            session.save_changes()


class RavenOwnershipResolver:
    """Reads task and issue ownership from the business collections.

    The field names default to the ones the task and issue services write;
    they can be overridden when the collaborator uses a different schema.
    """

    def __init__(
        self,
        store: DocumentStore,
        task_collection: str = "Tasks",
        issue_collection: str = "Issues",
        task_owner_fields: tuple[str, ...] = ("assigned_to", "created_by"),
        issue_owner_fields: tuple[str, ...] = ("assigned_to", "reported_by"),
    ) -> None:
        self.store = store
        self.task_collection = task_collection
        self.issue_collection = issue_collection
        self.task_owner_fields = task_owner_fields
        self.issue_owner_fields = issue_owner_fields

    def owned_task_ids(self, org_id: str, user_id: str) -> set[str]:
        return self._owned_ids(self.task_collection, self.task_owner_fields, org_id, user_id)

    def owned_issue_ids(self, org_id: str, user_id: str) -> set[str]:
        return self._owned_ids(self.issue_collection, self.issue_owner_fields, org_id, user_id)

    def _owned_ids(
        self, collection: str, owner_fields: tuple[str, ...], org_id: str, user_id: str
    ) -> set[str]:
        owner_clause = " or ".join(f"{name} = $user_id" for name in owner_fields)
        rql = f"from {collection} where org_id = $org_id and ({owner_clause})"
        with self.store.open_session() as session:
            results = _run_raw_query(session, rql, {"org_id": org_id, "user_id": user_id})

        ids = set()
        for result in results:
            entity_id = result.get("id") or result.get("@metadata", {}).get("@id")
            if entity_id:
                ids.add(str(entity_id))
        return ids
