"""Factory functions for creating LLM service instances."""

import logging
import os

from dotenv import load_dotenv

from workrag.constants import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GENERATION_BACKENDS,
    DEFAULT_OLLAMA_HOST,
    DEFAULT_OLLAMA_MODEL,
)
from workrag.llm.base import LLMService
from workrag.llm.gemini import GeminiService
from workrag.llm.ollama import OllamaService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_llm_service(config: dict | None = None) -> LLMService:
    """Factory function to create an LLM service instance.

    Args:
        config: Optional configuration dictionary. If None, uses environment variables.
                Expected keys:
                - 'service': Service type (default: from LLM_SERVICE env, or "gemini")
                - 'host': Ollama host URL (default: from OLLAMA_HOST env)
                - 'model': Model name (default: from GEMINI_MODEL / OLLAMA_MODEL env)

    Returns:
        LLMService: An instance implementing the LLMService protocol.
    """
    if config is None:
        config = {}

    # Read service type from config, then env, then default to gemini
    service_type = config.get("service", os.getenv("LLM_SERVICE", "gemini"))

    if service_type == "ollama":
        host = config.get("host", os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST))
        model = config.get("model", os.getenv("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL))
        return OllamaService(host=host, model=model)

    if service_type == "gemini":
        model = config.get("model", os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL))
        return GeminiService(model=model)

    raise ValueError(f"Unsupported service type: {service_type}")


def parse_backend_names(value: str | None) -> list[str]:
    """Split a comma-separated backend list, dropping blanks and duplicates."""
    names: list[str] = []
    for raw in (value or "").split(","):
        name = raw.strip().lower()
        if name and name not in names:
            names.append(name)
    return names


def get_generation_backends(names: list[str] | None = None) -> list[LLMService]:
    """Build the ordered list of generation backends.

    A backend that cannot be constructed (missing API key, bad host) is logged
    and skipped so the remaining ones still serve requests.

    Args:
        names: Backend names in priority order. Defaults to GENERATION_BACKENDS env.

    Returns:
        list[LLMService]: Backends in the order they should be tried.
    """
    if names is None:
        names = parse_backend_names(
            os.getenv("GENERATION_BACKENDS", DEFAULT_GENERATION_BACKENDS)
        )

    backends: list[LLMService] = []
    for name in names:
        try:
            backends.append(get_llm_service({"service": name}))
        except Exception as e:
            logger.warning(f"⚠️ Generation backend '{name}' unavailable: {e}")

    if not backends:
        logger.warning("⚠️ No generation backends configured; answers will use static fallbacks")
    return backends
