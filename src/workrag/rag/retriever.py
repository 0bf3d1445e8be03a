"""Role-aware retrieval over the document store."""

import asyncio
import logging

from workrag.constants import DEFAULT_TOP_K, MAX_RETRIEVAL_LIMIT, PRIVILEGED_ROLES, ROLE_MEMBER
from workrag.errors import EmptyQuery, InvalidRole
from workrag.rag.embedder import Embedder
from workrag.service.database import DocumentStore, SimilarityHit

logger = logging.getLogger(__name__)


def clamp_retrieval_limit(limit: int | None) -> int:
    if limit is None or limit <= 0:
        return DEFAULT_TOP_K
    return min(limit, MAX_RETRIEVAL_LIMIT)


def check_role(role: str) -> str:
    """Return role unchanged, or raise InvalidRole."""
    if role not in PRIVILEGED_ROLES and role != ROLE_MEMBER:
        raise InvalidRole(f"invalid role: {role}")
    return role


class Retriever:
    """Embeds a query and runs the search that matches the caller's role.

    Admins and managers search the whole organization; members only see
    what the member visibility rule lets through.
    """

    def __init__(self, store: DocumentStore, embedder: Embedder) -> None:
        self.store = store
        self.embedder = embedder

    async def retrieve(
        self,
        org_id: str,
        user_id: str,
        role: str,
        query: str,
        limit: int | None = DEFAULT_TOP_K,
        allowed_source_types: list[str] | None = None,
    ) -> list[SimilarityHit]:
        """Find the records most similar to query that the user may see.

        Args:
            org_id: Organization to search
            user_id: Asking user (used for member visibility)
            role: "admin", "manager" or "member"
            query: Natural-language query
            limit: Number of hits wanted, clamped into [1, 5]
            allowed_source_types: Optional source-type filter. Only applies to
                admin and manager searches.

        Returns:
            list[SimilarityHit]: Hits ordered by similarity, highest first

        Raises:
            EmptyQuery: If the query is blank
            InvalidRole: If the role is unknown
            EmbeddingUnavailable: If the query cannot be embedded
        """
        if not query or not query.strip():
            raise EmptyQuery("query cannot be empty")
        check_role(role)
        limit = clamp_retrieval_limit(limit)

        query_embedding = await asyncio.to_thread(self.embedder.embed, query)

        if role in PRIVILEGED_ROLES:
            hits = await asyncio.to_thread(
                self.store.find_similar, org_id, query_embedding, allowed_source_types, limit
            )
        else:
            hits = await asyncio.to_thread(
                self.store.find_similar_for_role, org_id, user_id, query_embedding, limit
            )

        logger.info(f"🔍 Retrieved {len(hits)} documents for {role} in org {org_id}")
        return hits
