"""Google Gemini LLM service implementation."""

import asyncio
import logging

from google import genai

from workrag.constants import get_embedding_model

logger = logging.getLogger(__name__)


class GeminiService:
    """Google Gemini LLM service implementation.

    This service uses the Google Gemini API to generate responses from Google's LLM models.
    The API key is automatically retrieved from the GEMINI_API_KEY environment variable.
    Sampling is kept close to deterministic so grounded answers stay on the context.
    """

    name = "gemini"

    def __init__(
        self,
        model: str,
        temperature: float = 0.1,
        top_p: float = 0.8,
        top_k: int = 40,
    ) -> None:
        """Initialize the Gemini service.

        Args:
            model: The model name to use (e.g., "gemini-2.5-flash")
            temperature: Sampling temperature
            top_p: Nucleus sampling cutoff
            top_k: Top-k sampling cutoff
        """
        self.model = model
        self.generation_config = genai.types.GenerateContentConfig(
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
        )
        logger.info(f"🤖 Initializing GeminiService: model={model}")
        # The client gets the API key from the GEMINI_API_KEY environment variable
        self.client = genai.Client()

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response using Gemini.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
                     Gemini receives them concatenated into a single prompt.

        Returns:
            str: The generated response content from the model.
        """
        logger.info(f"🗣️  Generating response with {self.model}")
        logger.debug(f"Messages: {len(messages)} messages")
        for i, msg in enumerate(messages):
            role = msg.get("role", "unknown")
            content_preview = msg.get("content", "")[:100]
            logger.debug(f"  Message {i + 1} ({role}): {content_preview}...")

        try:
            contents = "\n".join([msg.get("content", "") for msg in messages])

            # The SDK call blocks; run it in a worker so cancellation reaches the caller
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=contents,
                config=self.generation_config,
            )

            content = response.text or ""
            logger.info(f"✅ Response generated: {len(content)} characters")
            return content
        except Exception as e:
            logger.error(f"❌ Gemini API error: {e}", exc_info=True)
            raise

    async def generate(self, prompt: str) -> str:
        """Generate a response for a single prompt."""
        return await self.generate_response([{"role": "user", "content": prompt}])

    def generate_embeddings(self, texts: list[str], model: str | None = None) -> list[list[float]]:
        """Generate embeddings for a list of texts using Gemini.

        Args:
            texts: List of text strings to embed
            model: Optional embedding model name. If None, uses EMBEDDING_MODEL env var
                   or service-specific default.

        Returns:
            list[list[float]]: List of embedding vectors
        """
        embedding_model = model or get_embedding_model("gemini")
        embeddings = []

        for text in texts:
            try:
                response = self.client.models.embed_content(model=embedding_model, contents=[text])
                embeddings.append(list(response.embeddings[0].values))
            except Exception as e:
                logger.error(f"❌ Gemini embedding error for text: {e}", exc_info=True)
                raise

        logger.debug(f"✅ Generated {len(embeddings)} embeddings with {embedding_model}")
        return embeddings
