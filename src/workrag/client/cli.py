"""Command-line interface for WorkRAG using Click."""

import asyncio
import logging
import os
from pathlib import Path

import click
from dotenv import load_dotenv

from workrag.client.cli_helpers import (
    ensure_database_exists,
    format_search_result,
    require_service,
)
from workrag.constants import DEFAULT_TOP_K, ROLE_ADMIN, VALID_ROLES
from workrag.rag.backfill import BackfillService, JsonRecordSource
from workrag.rag.dispatch import ImmediateDispatcher
from workrag.rag.indexer import Indexer
from workrag.rag.verification import DocumentVerifier

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "WARNING")),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

_role_option = click.option(
    "--role",
    type=click.Choice(sorted(VALID_ROLES)),
    default=ROLE_ADMIN,
    show_default=True,
    help="Role to search as",
)
_user_option = click.option(
    "--user", "user_id", type=str, default="cli", show_default=True, help="User id to search as"
)


@click.command()
@click.argument("org_id", type=str)
@click.option(
    "--records",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='JSON file with {"tasks": [...], "issues": [...]}',
)
@click.option(
    "--create-database",
    "create_database_flag",
    is_flag=True,
    default=False,
    help="Create the RavenDB database if it doesn't exist",
)
def backfill(org_id: str, records: Path, create_database_flag: bool) -> None:
    """Index every task and issue of ORG_ID from a records file.

    Example:
        workrag-backfill acme --records export.json
        workrag-backfill acme --records export.json --create-database
    """
    ensure_database_exists(create_if_missing=create_database_flag)
    service = require_service()

    click.echo(f"🔄 Backfilling organization '{org_id}' from {records}...")
    result = BackfillService(service, JsonRecordSource(records)).backfill_organization(org_id)

    click.echo(f"✓ Tasks indexed:  {result.tasks_indexed}")
    click.echo(f"✓ Issues indexed: {result.issues_indexed}")
    if result.unsearchable:
        click.echo(f"⚠️  Stored without embedding: {result.unsearchable}")
    if result.errors:
        click.echo(f"✗ Errors: {result.errors}", err=True)


@click.command()
@click.argument("org_id", type=str)
@click.argument("document_id", type=str)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--title", type=str, default=None, help="Document title (default: the file name)")
def ingest(org_id: str, document_id: str, file: Path, title: str | None) -> None:
    """Ingest a text FILE as DOCUMENT_ID for ORG_ID.

    The text is chunked for verification and indexed for search.

    Example:
        workrag-ingest acme D-17 report.txt --title "Q3 report"
    """
    ensure_database_exists()
    service = require_service()

    try:
        text = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        click.echo(f"✗ Error reading {file}: {e}", err=True)
        raise click.Abort()
    if not text.strip():
        click.echo(f"✗ Error: {file} has no text", err=True)
        raise click.Abort()

    verifier = DocumentVerifier(service.store, service.embedder, service.orchestrator)
    chunks = verifier.ingest_document(org_id, document_id, text)
    Indexer(service, ImmediateDispatcher()).index_document(org_id, document_id, title or file.name, text)

    click.echo(f"📄 Stored {len(chunks)} chunk(s) for document {document_id}")
    click.echo(f"✓ Document {document_id} indexed for search")


@click.command()
@click.argument("org_id", type=str)
def count(org_id: str) -> None:
    """Show the number of indexed records for ORG_ID.

    Example:
        workrag-count acme
    """
    ensure_database_exists()
    service = require_service()
    try:
        doc_count = service.store.count_documents(org_id)
    except Exception as e:
        click.echo(f"✗ Error counting documents: {e}", err=True)
        raise click.Abort()
    click.echo(f"📊 Organization '{org_id}' has {doc_count} indexed record(s)")


@click.command()
@click.argument("org_id", type=str)
@click.argument("query", type=str)
@click.option("--top-k", type=int, default=DEFAULT_TOP_K, help="Number of results to return (max 5)")
@_role_option
@_user_option
def search(org_id: str, query: str, top_k: int, role: str, user_id: str) -> None:
    """Search ORG_ID's indexed records for QUERY.

    Example:
        workrag-search acme "login bug"
        workrag-search acme "login bug" --role member --user u-42
    """
    ensure_database_exists()
    service = require_service()

    click.echo(f"🔍 Searching for: '{query}'")
    try:
        hits = asyncio.run(service.retriever.retrieve(org_id, user_id, role, query, limit=top_k))
    except ValueError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    except Exception as e:
        click.echo(f"✗ Search failed: {e}", err=True)
        click.echo("\nPlease ensure the embedding service and RavenDB are running.", err=True)
        raise click.Abort()

    if not hits:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(hits)} result(s):\n")
    for i, hit in enumerate(hits, 1):
        click.echo(format_search_result(i, hit))


@click.command()
@click.argument("org_id", type=str)
@click.argument("question", type=str)
@_role_option
@_user_option
def ask(org_id: str, question: str, role: str, user_id: str) -> None:
    """Ask a QUESTION about ORG_ID's tasks and issues.

    Example:
        workrag-ask acme "Which issues are still open?"
    """
    ensure_database_exists()
    service = require_service()

    try:
        response = asyncio.run(service.query(org_id, user_id, role, question))
    except ValueError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()

    click.echo(response.answer)
    if response.sources:
        click.echo("\nSources:")
        for hit in response.sources:
            click.echo(f"  • [{hit.source_type} {hit.source_id}] ({hit.similarity:.2f})")


if __name__ == "__main__":
    ask()
