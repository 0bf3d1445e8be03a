"""Data models for the RAG document store."""

import uuid
from dataclasses import asdict, dataclass, field

from workrag.constants import SOURCE_TYPES
from workrag.errors import InvalidDocument


def validate_source_type(source_type: str) -> str:
    """Return source_type unchanged, or raise InvalidDocument if it is unknown."""
    if source_type not in SOURCE_TYPES:
        raise InvalidDocument(f"invalid source type: {source_type}")
    return source_type


def new_document_id() -> str:
    """Generate an opaque identifier for a freshly indexed record."""
    return uuid.uuid4().hex


@dataclass(eq=False)
class IndexedDocument:
    """One indexed business object (task, issue, comment or document).

    Note: eq=False ensures each instance is unique and hashable by identity,
    which is required for RavenDB's session entity tracking.

    Attributes:
        org_id: Tenant that owns the record
        source_type: One of SOURCE_TYPES
        source_id: Identifier of the originating business entity
        content: Canonical text used for embedding and as grounding context
        embedding: Vector embedding, or None when it could not be computed.
            Such records are stored but never returned by similarity search.
        id: Opaque identifier generated at index time
    """

    org_id: str
    source_type: str
    source_id: str
    content: str
    embedding: list[float] | None = None
    id: str = field(default_factory=new_document_id)

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.org_id, self.source_type, self.source_id)

    @property
    def searchable(self) -> bool:
        return bool(self.embedding)

    def __hash__(self) -> int:
        """Hash by object identity for RavenDB session tracking."""
        return id(self)


@dataclass(eq=False)
class DocumentChunk:
    """A window of an uploaded document's extracted text.

    Chunks are owned by their parent document and written as one batch.

    Attributes:
        org_id: Tenant that owns the parent document
        document_id: Parent document identifier
        chunk_index: 0-based position of this window in the document
        content: The text of the window
        embedding: Vector embedding, or None if embeddings were unavailable
        id: Opaque identifier
    """

    org_id: str
    document_id: str
    chunk_index: int
    content: str
    embedding: list[float] | None = None
    id: str = field(default_factory=new_document_id)

    def __hash__(self) -> int:
        """Hash by object identity for RavenDB session tracking."""
        return id(self)


@dataclass
class SimilarityHit:
    """A retrieval result handed to the generation step."""

    source_type: str
    source_id: str
    content: str
    similarity: float

    def to_dict(self) -> dict:
        return asdict(self)


def clamp_similarity(score: float) -> float:
    """Clamp a raw cosine score into [0, 1]."""
    return max(0.0, min(1.0, float(score)))
