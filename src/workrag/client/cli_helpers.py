"""Helper functions for CLI commands."""

import click

from workrag.constants import CONTENT_PREVIEW_LENGTH
from workrag.rag.service import Service, create_rag_service
from workrag.service.database import (
    RavenDBConfig,
    SimilarityHit,
    create_database,
    database_exists,
)


def ensure_database_exists(create_if_missing: bool = False) -> bool:
    """Check if database exists, optionally create it.

    Only applies to the RavenDB store; the in-memory store always exists.

    Args:
        create_if_missing: If True, attempt to create the database

    Returns:
        True if database exists (or was created)

    Raises:
        click.Abort: If database doesn't exist and can't be created
    """
    if RavenDBConfig.get_backend() != "ravendb":
        return True

    if database_exists():
        return True

    if create_if_missing:
        click.echo("Database does not exist. Creating database...")
        try:
            create_database()
            click.echo("✓ Database created successfully!")
            return True
        except Exception as e:
            click.echo(f"✗ Failed to create database: {e}", err=True)
            click.echo("\nPlease ensure RavenDB is running and accessible.", err=True)
            raise click.Abort()

    # Database doesn't exist and we're not creating it
    click.echo("✗ Error: Database does not exist!", err=True)
    click.echo("\nPlease create the database first using:", err=True)
    click.echo("  workrag-backfill <org> --records <file> --create-database", err=True)
    raise click.Abort()


def require_service() -> Service:
    """Build the RAG service or abort with an explanation."""
    try:
        service = create_rag_service()
    except Exception as e:
        click.echo(f"✗ Could not initialize RAG service: {e}", err=True)
        raise click.Abort()

    if service is None:
        click.echo("✗ RAG is disabled or no embedding service is configured.", err=True)
        click.echo("  Check RAG_ENABLED, EMBEDDING_SERVICE and GEMINI_API_KEY / OLLAMA_HOST.", err=True)
        raise click.Abort()
    return service


def format_search_result(index: int, hit: SimilarityHit, max_length: int = CONTENT_PREVIEW_LENGTH) -> str:
    """Format a search hit for display.

    Args:
        index: Result number (1-based)
        hit: Similarity hit to show
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    content = hit.content
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    lines = [
        f"{index}. [{hit.source_type} {hit.source_id}] (similarity: {hit.similarity:.4f})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)
