"""Answer generation: intent classification, grounding and backend fallback."""

import asyncio
import logging
from dataclasses import dataclass, field

from workrag.constants import DEFAULT_TOP_K
from workrag.errors import EmptyQuery, GenerationFailure
from workrag.llm.base import GenerationBackend
from workrag.rag import prompts
from workrag.rag.retriever import Retriever, check_role
from workrag.service.database import SimilarityHit

logger = logging.getLogger(__name__)

GREETINGS = (
    "hello",
    "hi",
    "hey",
    "good morning",
    "good afternoon",
    "good evening",
    "howdy",
    "greetings",
    "what's up",
    "whats up",
    "sup",
)

# Substring matches. Bare "help" and "ty" are left out: they occur inside
# ordinary work questions ("help desk tickets", "property", "priority").
ABOUT_ASSISTANT_PHRASES = (
    "who are you",
    "what are you",
    "what can you do",
    "how do i use you",
    "how to use you",
    "what is this",
    "how does this work",
    "what can i ask",
    "what should i ask",
    "give me examples",
    "how can you help",
    "what do you do",
    "introduce yourself",
    "tell me about yourself",
    "your capabilities",
    "your features",
)

THANKS_PHRASES = ("thank you", "thanks", "thx", "appreciate")

_GREETING_SEPARATORS = (" ", "!", ",")


def is_conversational(question: str) -> bool:
    """Return True for greetings, questions about the assistant, and thanks.

    Greetings must be the whole message or be followed by a space, "!" or ",".
    The other phrases match anywhere in the message.
    """
    text = (question or "").strip().lower()
    if not text:
        return False

    for greeting in GREETINGS:
        if text == greeting or any(text.startswith(greeting + sep) for sep in _GREETING_SEPARATORS):
            return True

    if any(phrase in text for phrase in ABOUT_ASSISTANT_PHRASES):
        return True

    return any(phrase in text for phrase in THANKS_PHRASES)


def build_context_block(hits: list[SimilarityHit]) -> str:
    """Number the hits as documents, tagged with their source type."""
    sections = [
        f"--- Document {n} [{hit.source_type}] ---\n{hit.content}\n\n"
        for n, hit in enumerate(hits, 1)
    ]
    return "".join(sections)


@dataclass
class QueryResponse:
    """Answer plus the exact hits it was grounded on."""

    answer: str
    sources: list[SimilarityHit] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "answer": self.answer,
            "sources": [hit.to_dict() for hit in self.sources],
        }


class GenerationOrchestrator:
    """Turns a question into a grounded answer.

    Backends are tried in order; the first non-empty answer wins. Each call
    runs under the optional per-call timeout, while cancellation of the
    surrounding task propagates unchanged.
    """

    def __init__(
        self,
        retriever: Retriever | None,
        backends: list[GenerationBackend],
        timeout: float | None = None,
    ) -> None:
        self.retriever = retriever
        self.backends = list(backends)
        self.timeout = timeout

    async def answer(self, org_id: str, user_id: str, role: str, question: str) -> QueryResponse:
        """Answer a question for one user of one organization.

        Raises:
            EmptyQuery: If the question is blank
            InvalidRole: If the role is unknown
        """
        if not question or not question.strip():
            raise EmptyQuery("question cannot be empty")
        check_role(role)

        if is_conversational(question):
            logger.info("💬 Conversational message; skipping retrieval")
            text = await self._first_answer_or(
                [prompts.introduction_prompt(question)], prompts.STATIC_INTRODUCTION
            )
            return QueryResponse(answer=text)

        hits = await self._retrieve(org_id, user_id, role, question)
        if not hits:
            logger.info("📭 No relevant documents found")
            text = await self._first_answer_or(
                [prompts.no_data_prompt(question)], prompts.STATIC_NO_DATA
            )
            return QueryResponse(answer=text)

        context_block = build_context_block(hits)
        grounded = [
            prompts.grounded_prompt_for(position, context_block, question)
            for position in range(len(self.backends))
        ]
        try:
            text = await self.generate(grounded)
        except GenerationFailure as e:
            logger.warning(f"⚠️ {e}; returning insufficient-data answer")
            text = prompts.INSUFFICIENT_DATA

        return QueryResponse(answer=text, sources=hits)

    async def generate(self, prompt_per_backend: list[str]) -> str:
        """Try each backend with its prompt; return the first non-empty answer.

        Args:
            prompt_per_backend: One prompt per backend. A shorter list reuses
                its last prompt for the remaining backends.

        Raises:
            GenerationFailure: If every backend fails or returns nothing
        """
        if not self.backends or not prompt_per_backend:
            raise GenerationFailure("no generation backends configured")

        for position, backend in enumerate(self.backends):
            prompt = prompt_per_backend[min(position, len(prompt_per_backend) - 1)]
            name = getattr(backend, "name", type(backend).__name__)
            try:
                async with asyncio.timeout(self.timeout):
                    text = await backend.generate(prompt)
            except TimeoutError:
                logger.warning(f"⚠️ Backend '{name}' timed out after {self.timeout}s")
                continue
            except Exception as e:
                logger.warning(f"⚠️ Backend '{name}' failed: {e}")
                continue

            text = (text or "").strip()
            if text:
                logger.info(f"✅ Answer generated by '{name}'")
                return text
            logger.warning(f"⚠️ Backend '{name}' returned an empty answer")

        raise GenerationFailure("all generation backends failed")

    async def _first_answer_or(self, prompt_per_backend: list[str], fallback: str) -> str:
        try:
            return await self.generate(prompt_per_backend)
        except GenerationFailure:
            return fallback

    async def _retrieve(self, org_id: str, user_id: str, role: str, question: str) -> list[SimilarityHit]:
        if self.retriever is None:
            return []
        try:
            return await self.retriever.retrieve(org_id, user_id, role, question, limit=DEFAULT_TOP_K)
        except Exception as e:
            logger.error(f"❌ Retrieval failed, answering without documents: {e}", exc_info=True)
            return []
