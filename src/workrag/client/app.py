"""Flask web application exposing the RAG query, backfill and verification API.

The upstream gateway authenticates users and forwards their identity in
headers; this app only answers questions, re-indexes organizations and
verifies uploaded documents.
"""

import logging
import os

from dotenv import load_dotenv
from flask import Flask

from workrag.client.routes import health_bp, init_config, rag_bp
from workrag.rag.backfill import JsonRecordSource
from workrag.rag.config import RAGSettings
from workrag.rag.indexer import create_indexer
from workrag.rag.service import create_rag_service
from workrag.rag.verification import DocumentVerifier
from workrag.service.database import RavenDBConfig, create_store

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded")

# Create Flask app
app = Flask(__name__)
logger.debug("Flask app created")

# Register blueprints
app.register_blueprint(rag_bp)
app.register_blueprint(health_bp)


def initialize_services():
    """Initialize the document store, RAG service, indexer and verifier on startup."""
    logger.info("🔧 Initializing services...")

    settings = RAGSettings.from_env()
    if not settings.enabled:
        logger.info("ℹ️ RAG disabled; API will answer 503")
        return

    backend = RavenDBConfig.get_backend()
    store = create_store(backend)
    logger.info(f"✅ Document store initialized ({backend})")

    service = create_rag_service(settings, store=store)
    if service is None:
        logger.warning("⚠️ RAG service unavailable; API will answer 503")
        return
    logger.info("✅ RAG service initialized successfully")

    verifier = DocumentVerifier(store, service.embedder, service.orchestrator)
    indexer = create_indexer(settings, service)

    record_source = None
    records_file = os.getenv("BACKFILL_RECORDS_FILE")
    if records_file:
        record_source = JsonRecordSource(records_file)
        logger.info(f"✅ Backfill records file configured: {records_file}")

    # Initialize route configuration
    init_config(
        service=service,
        verifier=verifier,
        indexer=indexer,
        record_source=record_source,
        store_backend=backend,
    )


def create_app():
    """Factory function for creating the Flask application.

    This function is used by WSGI servers like gunicorn to create the app.
    It initializes services before returning the app instance.

    Returns:
        Flask: The configured Flask application instance
    """
    initialize_services()
    return app


def main() -> None:
    """Entry point for the Flask application command-line interface."""
    print("🚀 Starting WorkRAG Flask application...")

    # Initialize services
    print("📦 Initializing RAG services...")
    initialize_services()
    print("✅ Services initialized successfully")

    # Run Flask app
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("FLASK_ENV", "development") == "development"

    print(f"🌐 Starting Flask server on http://{host}:{port}")
    print(f"🔧 Debug mode: {debug}")
    print("📝 Press CTRL+C to quit")

    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()
