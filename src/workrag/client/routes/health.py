"""Health check API route."""

from flask import Blueprint, jsonify

from workrag.client.routes.config import get_config

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint.

    Returns:
        JSON with service status
    """
    config = get_config()
    backends = []
    if config.service is not None:
        backends = [getattr(b, "name", "unknown") for b in config.service.orchestrator.backends]

    return jsonify(
        {
            "status": "healthy",
            "rag_service": "initialized" if config.service else "disabled",
            "verification": "initialized" if config.verifier else "disabled",
            "document_store": config.store_backend,
            "generation_backends": backends,
        }
    )
