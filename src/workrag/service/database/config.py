"""Configuration for the document store connection."""

import os

from dotenv import load_dotenv

from workrag.constants import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_RAVENDB_DATABASE,
    DEFAULT_RAVENDB_URL,
)

# Load environment variables
load_dotenv()


class RavenDBConfig:
    """Configuration class for RavenDB connection details."""

    @staticmethod
    def get_url() -> str:
        """Get the RavenDB server URL from environment variables.

        Returns:
            str: RavenDB server URL (default: http://localhost:8080)
        """
        return os.getenv("RAVENDB_URL", DEFAULT_RAVENDB_URL)

    @staticmethod
    def get_database_name() -> str:
        """Get the RavenDB database name from environment variables.

        Returns:
            str: Database name (default: workrag)
        """
        return os.getenv("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE)

    @staticmethod
    def get_embedding_dimensions() -> int:
        """Get the vector size declared on the embedding index."""
        return int(os.getenv("EMBEDDING_DIMENSIONS", str(DEFAULT_EMBEDDING_DIMENSIONS)))

    @staticmethod
    def get_backend() -> str:
        """Get the store backend name ("ravendb" or "memory")."""
        return os.getenv("DOCUMENT_STORE", "ravendb").strip().lower()
