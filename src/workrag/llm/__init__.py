"""LLM service abstraction layer for workrag.

This package provides a unified interface for multiple LLM providers:
- GeminiService: Google Gemini API
- OllamaService: Local LLM via Ollama

All services implement the LLMService protocol and can serve both as
embedding providers and as ordered generation backends.

Usage:
    from workrag.llm import get_llm_service, get_generation_backends

    # Create service from environment config
    service = get_llm_service()

    # Ordered fallback chain from GENERATION_BACKENDS
    backends = get_generation_backends()
"""

from workrag.llm.base import GenerationBackend, LLMService
from workrag.llm.factory import get_generation_backends, get_llm_service, parse_backend_names
from workrag.llm.gemini import GeminiService
from workrag.llm.ollama import OllamaService

__all__ = [
    "GenerationBackend",
    "LLMService",
    "OllamaService",
    "GeminiService",
    "get_llm_service",
    "get_generation_backends",
    "parse_backend_names",
]
