"""Database operations for RavenDB - connection, indexing and database admin."""

import requests
from ravendb import DocumentStore
from ravendb.documents.indexes.definitions import (
    FieldIndexing,
    FieldStorage,
    IndexDefinition,
    IndexFieldOptions,
)
from ravendb.documents.indexes.vector.options import VectorOptions
from ravendb.documents.operations.indexes import GetIndexNamesOperation, PutIndexesOperation

from workrag.service.database.config import RavenDBConfig

INDEXED_COLLECTION = "IndexedDocuments"
CHUNK_COLLECTION = "DocumentChunks"
EMBEDDING_INDEX = "IndexedDocuments/ByEmbedding"


def create_document_store(url: str | None = None, database: str | None = None) -> DocumentStore:
    """Create and initialize a DocumentStore instance.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())

    Returns:
        DocumentStore: Initialized DocumentStore instance
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    store = DocumentStore([url], database)
    store.initialize()
    return store


def ensure_index_exists(store: DocumentStore) -> None:
    """Ensure the vector search index exists in RavenDB.

    Creates a static index named 'IndexedDocuments/ByEmbedding' over records
    that carry an embedding. The tenant and visibility fields are indexed
    too, so role filters run inside the vector query.

    Args:
        store: Initialized DocumentStore instance
    """
    # Check if index already exists
    existing_indexes = store.maintenance.send(GetIndexNamesOperation(0, 100))
    if EMBEDDING_INDEX in existing_indexes:
        return

    index_definition = IndexDefinition()
    index_definition.name = EMBEDDING_INDEX

    index_definition.maps = {
        f"""from doc in docs.{INDEXED_COLLECTION}
        where doc.embedding != null
        select new {{
            org_id = doc.org_id,
            source_type = doc.source_type,
            source_id = doc.source_id,
            embedding = CreateField("embedding", doc.embedding, new CreateFieldOptions {{ Storage = FieldStorage.Yes, Indexing = FieldIndexing.No }})
        }}"""
    }

    vector_options = VectorOptions(dimensions=RavenDBConfig.get_embedding_dimensions())

    index_definition.fields = {
        "embedding": IndexFieldOptions(
            storage=FieldStorage.YES, indexing=FieldIndexing.NO, vector=vector_options
        )
    }

    store.maintenance.send(PutIndexesOperation(index_definition))


def database_exists(url: str | None = None, database: str | None = None) -> bool:
    """Check if a database exists in RavenDB.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())

    Returns:
        bool: True if database exists, False otherwise
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    try:
        store = DocumentStore([url], database)
        store.initialize()
        with store.open_session() as session:
            list(session.query().take(0))
        store.close()
        return True
    except Exception:
        return False


def create_database(url: str | None = None, database: str | None = None) -> None:
    """Create a new database in RavenDB.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    api_url = f"{url}/admin/databases"
    payload = {"DatabaseName": database, "Settings": {}, "Disabled": False}

    response = requests.put(api_url, json=payload, timeout=30)
    response.raise_for_status()
