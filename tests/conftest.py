"""Pytest configuration and shared fixtures for the test suite."""

import re

import pytest
import requests

from workrag.errors import EmbeddingUnavailable
from workrag.rag.visibility import StaticOwnershipResolver
from workrag.service.database import InMemoryDocumentStore

ORG = "org-1"
OTHER_ORG = "org-2"


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def ravendb_available() -> bool:
    """Check if RavenDB server is running and accessible.

    Returns:
        True if RavenDB is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:8080/databases", timeout=2)
        return response.status_code in (200, 401)  # Auth required is OK
    except requests.RequestException:
        return False


class VocabularyEmbedder:
    """Deterministic bag-of-words embedder.

    Every distinct token gets its own dimension the first time it is seen, so
    texts sharing words have positive cosine similarity and texts with no
    words in common are orthogonal.
    """

    def __init__(self, dimensions: int = 512) -> None:
        self.dimensions = dimensions
        self.vocabulary: dict[str, int] = {}
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise ValueError("text cannot be empty")
        self.calls.append(text)
        vector = [0.0] * self.dimensions
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            index = self.vocabulary.setdefault(token, len(self.vocabulary))
            vector[index % self.dimensions] += 1.0
        return vector


class FailingEmbedder:
    """Embedder whose backend is always down."""

    def __init__(self) -> None:
        self.calls = 0

    def embed(self, text: str) -> list[float]:
        self.calls += 1
        raise EmbeddingUnavailable("embedding backend down")


class FakeBackend:
    """Generation backend with a scripted reply (a string or an exception)."""

    def __init__(self, name: str, reply="generated answer") -> None:
        self.name = name
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if isinstance(self.reply, BaseException):
            raise self.reply
        return self.reply


# Service fixtures with skip markers
@pytest.fixture
def ollama_service():
    """Provide OllamaService instance, skip if Ollama not available."""
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from workrag.llm import OllamaService

    return OllamaService(host="http://localhost:11434", model="llama3")


@pytest.fixture
def ravendb_store():
    """Provide RavenDB DocumentStore, skip if RavenDB not available."""
    if not ravendb_available():
        pytest.skip("RavenDB server not running on localhost:8080")

    from workrag.service.database import create_document_store

    store = create_document_store()
    yield store
    store.close()


# Helper fixtures
@pytest.fixture
def embedder() -> VocabularyEmbedder:
    return VocabularyEmbedder()


@pytest.fixture
def failing_embedder() -> FailingEmbedder:
    return FailingEmbedder()


@pytest.fixture
def ownership() -> StaticOwnershipResolver:
    """Ownership table: u-1 owns T1 and I1, u-2 owns T2."""
    resolver = StaticOwnershipResolver()
    resolver.add_task(ORG, "T1", assigned_to="u-1", created_by="u-9")
    resolver.add_task(ORG, "T2", assigned_to="u-2", created_by="u-2")
    resolver.add_issue(ORG, "I1", assigned_to=None, reported_by="u-1")
    resolver.add_issue(ORG, "I2", assigned_to="u-2", reported_by="u-9")
    return resolver


@pytest.fixture
def memory_store(ownership) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(ownership=ownership)


@pytest.fixture
def make_backend():
    """Factory fixture creating FakeBackend instances."""

    def _make(name: str = "primary", reply="generated answer") -> FakeBackend:
        return FakeBackend(name, reply)

    return _make
