"""Flask route blueprints for the workrag client application."""

from workrag.client.routes.config import get_config, init_config, reset_config
from workrag.client.routes.health import health_bp
from workrag.client.routes.rag import rag_bp

__all__ = [
    "rag_bp",
    "health_bp",
    "init_config",
    "get_config",
    "reset_config",
]
