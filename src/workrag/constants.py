"""Application-wide constants and defaults for WorkRAG.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# Source Types and Roles
# =============================================================================
SOURCE_TASK = "task"
SOURCE_ISSUE = "issue"
SOURCE_COMMENT = "comment"
SOURCE_DOCUMENT = "document"
SOURCE_TASK_DOCUMENT = "task_document"

SOURCE_TYPES = (
    SOURCE_TASK,
    SOURCE_ISSUE,
    SOURCE_COMMENT,
    SOURCE_DOCUMENT,
    SOURCE_TASK_DOCUMENT,
)

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_MEMBER = "member"

PRIVILEGED_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER})
VALID_ROLES = frozenset({ROLE_ADMIN, ROLE_MANAGER, ROLE_MEMBER})

# =============================================================================
# Retrieval Settings
# =============================================================================
DEFAULT_TOP_K = 5  # Default number of results for vector search
MAX_RETRIEVAL_LIMIT = 5  # Retriever never asks the store for more than this
MAX_STORE_LIMIT = 10  # Store-level clamp for similarity queries
MAX_EMBED_CHARS = 8000  # Input cap for a single embedding call

# =============================================================================
# Chunking Settings
# =============================================================================
DEFAULT_CHUNK_SIZE = 1200
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_MAX_CHUNKS = 200
MAX_CHUNKS_LISTED = 1000
CITATION_SNIPPET_LENGTH = 240
MAX_TASK_VERIFICATION_CHARS = 15000  # Document text sent with a task verification prompt

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews

# =============================================================================
# Default URLs, Hosts and Models
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_RAVENDB_URL = "http://localhost:8080"
DEFAULT_RAVENDB_DATABASE = "workrag"

DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OLLAMA_MODEL = "llama3"
DEFAULT_GENERATION_BACKENDS = "gemini,ollama"
DEFAULT_GENERATION_TIMEOUT_SECONDS = 60.0
DEFAULT_INDEXING_WORKERS = 4

# =============================================================================
# Embedding Model Defaults
# =============================================================================
EMBEDDING_DEFAULTS = {
    "ollama": "nomic-embed-text",
    "gemini": "text-embedding-004",
}

# Default embedding dimensions (for RavenDB vector index)
DEFAULT_EMBEDDING_DIMENSIONS = 768


def get_embedding_service() -> str:
    """Get the provider used for embeddings.

    Checks EMBEDDING_SERVICE first, then LLM_SERVICE, then defaults to "gemini".

    Returns:
        str: The embedding provider name ("gemini" or "ollama").
    """
    return os.getenv("EMBEDDING_SERVICE") or os.getenv("LLM_SERVICE", "gemini")


def get_embedding_model(service: str | None = None) -> str:
    """Get the default embedding model for a given LLM service.

    Checks the EMBEDDING_MODEL environment variable first, then falls back
    to service-specific defaults.

    Args:
        service: The LLM service name ("ollama" or "gemini").
                If None, uses the configured embedding service.

    Returns:
        str: The embedding model name to use.
    """
    # Environment variable takes precedence
    env_model = os.getenv("EMBEDDING_MODEL")
    if env_model:
        return env_model

    # Determine service if not provided
    if service is None:
        service = get_embedding_service()

    # Return service-specific default
    return EMBEDDING_DEFAULTS.get(service, EMBEDDING_DEFAULTS["gemini"])
