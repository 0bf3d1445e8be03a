"""Base protocols for LLM services."""

from typing import Protocol, runtime_checkable


class LLMService(Protocol):
    """Protocol defining the interface for LLM services.

    This protocol ensures type safety and allows for multiple LLM provider
    implementations while maintaining a consistent interface.
    """

    name: str

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response from the LLM based on the provided messages.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
                     Example: [{"role": "user", "content": "Hello"}]

        Returns:
            str: The generated response content from the LLM.
        """
        ...

    async def generate(self, prompt: str) -> str:
        """Generate a response for a single prompt string."""
        ...

    def generate_embeddings(self, texts: list[str], model: str | None = None) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed
            model: Optional embedding model name. If None, uses a default for the service.

        Returns:
            list[list[float]]: List of embedding vectors
        """
        ...


@runtime_checkable
class GenerationBackend(Protocol):
    """A text generator tried in order by the orchestrator.

    Implementations raise on failure; an empty string is also treated as a
    failure by callers.
    """

    name: str

    async def generate(self, prompt: str) -> str: ...
