"""Exception taxonomy for the RAG core.

Only ``EmptyQuery`` and ``InvalidRole`` are expected to reach the API layer;
the others are contained at the Indexer and orchestrator boundaries.
"""


class RAGError(Exception):
    """Base class for every error raised by workrag."""


class EmbeddingUnavailable(RAGError):
    """The embedding backend is down, unconfigured or returned nothing."""


class InvalidDocument(RAGError):
    """A document cannot be stored: unknown source type or missing embedding."""


class EmptyQuery(RAGError, ValueError):
    """The question or search query is blank."""


class InvalidRole(RAGError, ValueError):
    """The caller's role is not one of admin, manager or member."""


UnknownRole = InvalidRole


class GenerationFailure(RAGError):
    """Every configured generation backend failed or returned nothing."""


class ParseFailure(RAGError):
    """Structured model output could not be parsed."""
