"""Shared configuration for route modules."""

from dataclasses import dataclass
from typing import Any


@dataclass
class RouteConfig:
    """Configuration container for Flask route dependencies.

    ``service`` is None when RAG is disabled; the routes then answer 503.
    """

    service: Any = None
    verifier: Any = None
    indexer: Any = None
    record_source: Any = None
    store_backend: str | None = None


# Single shared config instance
_config = RouteConfig()


def get_config() -> RouteConfig:
    """Get the shared route configuration.

    Returns:
        RouteConfig instance with current settings
    """
    return _config


def init_config(
    service: Any = None,
    verifier: Any = None,
    indexer: Any = None,
    record_source: Any = None,
    store_backend: str | None = None,
) -> None:
    """Initialize the shared route configuration.

    Args:
        service: RAG Service instance
        verifier: DocumentVerifier instance
        indexer: Indexer used by the index and delete routes
        record_source: RecordSource used by backfill requests without inline records
        store_backend: Name of the configured document store
    """
    if service is not None:
        _config.service = service
    if verifier is not None:
        _config.verifier = verifier
    if indexer is not None:
        _config.indexer = indexer
    if record_source is not None:
        _config.record_source = record_source
    if store_backend is not None:
        _config.store_backend = store_backend


def reset_config() -> None:
    """Clear every dependency (used by tests)."""
    _config.service = None
    _config.verifier = None
    _config.indexer = None
    _config.record_source = None
    _config.store_backend = None
