"""Per-document verification: ingest an uploaded document's text as chunks,
then answer a question about that one document with a structured verdict,
or judge whether it shows that an assigned task was completed.
"""

import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field

from workrag.constants import (
    CITATION_SNIPPET_LENGTH,
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_CHUNKS,
    DEFAULT_TOP_K,
    MAX_TASK_VERIFICATION_CHARS,
)
from workrag.errors import EmptyQuery, GenerationFailure, InvalidDocument, ParseFailure
from workrag.rag import prompts
from workrag.rag.chunking import ScoredIndex, chunk_text, cosine_similarity, keyword_score, top_k
from workrag.rag.embedder import Embedder
from workrag.rag.orchestrator import GenerationOrchestrator
from workrag.service.database import DocumentChunk, DocumentStore

logger = logging.getLogger(__name__)

VERDICTS = ("verified", "unverified", "insufficient")
VERDICT_INSUFFICIENT = "insufficient"

RECOMMENDATIONS = ("approve", "needs_review", "reject")
RECOMMENDATION_NEEDS_REVIEW = "needs_review"
TRUNCATION_MARKER = "\n...[content truncated for analysis]"


def parse_llm_json(raw: str) -> dict:
    """Parse JSON from a model response, handling code fences and preamble text.

    Tries in order:
    1. Strip markdown code fences, then json.loads
    2. Extract substring between first '{' and last '}', then json.loads

    Raises:
        ParseFailure: If no JSON object can be recovered
    """
    if not raw or not raw.strip():
        raise ParseFailure("empty model output")

    text = raw.strip()
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines)

    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start >= 0 and end > start:
        try:
            parsed = json.loads(raw[start:end])
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

    raise ParseFailure("model output is not a JSON object")


@dataclass
class Citation:
    chunk_index: int
    snippet: str


@dataclass
class VerificationResult:
    """Structured verdict on one question about one document.

    Attributes:
        verdict: "verified", "unverified" or "insufficient"
        confidence: Model confidence in [0, 1]
        answer: The model's answer, or its raw output when it could not be parsed
        citations: The chunks the answer was grounded on
        raw_model_output: Unparsed model output, kept only on degraded results
    """

    verdict: str
    confidence: float
    answer: str
    citations: list[Citation] = field(default_factory=list)
    raw_model_output: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _clamp_confidence(value) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(1.0, confidence))


def interpret_verdict(raw: str, citations: list[Citation]) -> VerificationResult:
    """Turn model output into a VerificationResult, degrading on bad output."""
    try:
        data = parse_llm_json(raw)
        verdict = str(data.get("verdict", "")).strip().lower()
        if verdict not in VERDICTS:
            raise ParseFailure(f"unknown verdict: {verdict!r}")
        return VerificationResult(
            verdict=verdict,
            confidence=_clamp_confidence(data.get("confidence")),
            answer=str(data.get("answer") or "").strip(),
            citations=citations,
        )
    except ParseFailure as e:
        logger.warning(f"⚠️ Unparseable verification output: {e}")
        text = (raw or "").strip()
        return VerificationResult(
            verdict=VERDICT_INSUFFICIENT,
            confidence=0.0,
            answer=text,
            citations=citations,
            raw_model_output=text,
        )


@dataclass
class TaskVerificationResult:
    """Whether a submitted document shows that an assigned task was done.

    Attributes:
        task_matches: True if the document demonstrates the task
        completed_work: What the document shows was done
        missing_work: Deliverables the task asks for that the document lacks
        verification_notes: Free-form notes for the reviewing manager
        recommendation: "approve", "needs_review" or "reject"
        raw_model_output: Unparsed model output, kept only on degraded results
    """

    task_matches: bool
    completed_work: str = ""
    missing_work: list[str] = field(default_factory=list)
    verification_notes: str = ""
    recommendation: str = RECOMMENDATION_NEEDS_REVIEW
    raw_model_output: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def document_text(
    chunks: list[DocumentChunk],
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    limit: int = MAX_TASK_VERIFICATION_CHARS,
) -> str:
    """Rebuild a document from its overlapping chunks, cut at limit characters."""
    ordered = sorted(chunks, key=lambda c: c.chunk_index)
    parts = [c.content if i == 0 else c.content[overlap:] for i, c in enumerate(ordered)]
    text = "".join(parts)
    if len(text) > limit:
        text = text[:limit] + TRUNCATION_MARKER
    return text


def interpret_task_verification(raw: str) -> TaskVerificationResult:
    """Turn model output into a TaskVerificationResult, degrading on bad output."""
    try:
        data = parse_llm_json(raw)
    except ParseFailure as e:
        logger.warning(f"⚠️ Unparseable task verification output: {e}")
        text = (raw or "").strip()
        return TaskVerificationResult(
            task_matches=False,
            verification_notes=text,
            raw_model_output=text,
        )

    recommendation = str(data.get("recommendation", "")).strip().lower()
    if recommendation not in RECOMMENDATIONS:
        recommendation = RECOMMENDATION_NEEDS_REVIEW

    missing = data.get("missing_work") or []
    if isinstance(missing, str):
        missing = [missing]

    return TaskVerificationResult(
        task_matches=data.get("task_matches") is True,
        completed_work=str(data.get("completed_work") or "").strip(),
        missing_work=[str(item).strip() for item in missing if str(item).strip()],
        verification_notes=str(data.get("verification_notes") or "").strip(),
        recommendation=recommendation,
    )


class DocumentVerifier:
    """Answers questions about a single uploaded document."""

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embedder | None,
        orchestrator: GenerationOrchestrator,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.orchestrator = orchestrator

    def ingest_document(self, org_id: str, document_id: str, text: str) -> list[DocumentChunk]:
        """Chunk and embed a document's extracted text and store the chunks.

        If any chunk fails to embed, all chunks are stored without embeddings
        and verification falls back to keyword ranking for this document.

        Returns:
            list[DocumentChunk]: The stored chunks (empty for blank text)
        """
        chunks = chunk_text(text, DEFAULT_CHUNK_SIZE, DEFAULT_CHUNK_OVERLAP, DEFAULT_MAX_CHUNKS)
        if not chunks:
            logger.info(f"ℹ️ Document {document_id} has no text to ingest")
            return []

        embeddings: list[list[float]] | None = None
        if self.embedder is not None:
            try:
                embeddings = [self.embedder.embed(chunk) for chunk in chunks]
            except Exception as e:
                logger.warning(f"⚠️ Storing document {document_id} chunks without embeddings: {e}")
                embeddings = None

        stored = self.store.store_chunks(org_id, document_id, chunks, embeddings)
        logger.info(f"📄 Ingested document {document_id}: {len(stored)} chunks")
        return stored

    def rank_chunks(self, question: str, chunks: list[DocumentChunk], k: int) -> list[DocumentChunk]:
        query_embedding = None
        if self.embedder is not None:
            try:
                query_embedding = self.embedder.embed(question)
            except Exception as e:
                logger.warning(f"⚠️ Query embedding failed, using keyword ranking: {e}")

        scored = []
        for position, chunk in enumerate(chunks):
            if query_embedding and chunk.embedding:
                score = cosine_similarity(query_embedding, chunk.embedding)
            else:
                score = keyword_score(question, chunk.content)
            scored.append(ScoredIndex(index=position, score=score))

        return [chunks[s.index] for s in top_k(scored, k)]

    async def verify(
        self, org_id: str, document_id: str, question: str, top_k: int = DEFAULT_TOP_K
    ) -> VerificationResult:
        """Answer a question using only the given document's chunks.

        Raises:
            EmptyQuery: If the question is blank
            InvalidDocument: If the document has no stored chunks
        """
        if not question or not question.strip():
            raise EmptyQuery("question cannot be empty")

        chunks = await asyncio.to_thread(self.store.list_chunks, org_id, document_id)
        if not chunks:
            raise InvalidDocument(f"document {document_id} has no extracted content")

        selected = await asyncio.to_thread(self.rank_chunks, question, chunks, top_k)
        excerpts = [f"[Chunk {c.chunk_index}]\n{c.content}" for c in selected]
        citations = [
            Citation(chunk_index=c.chunk_index, snippet=c.content[:CITATION_SNIPPET_LENGTH])
            for c in selected
        ]

        try:
            raw = await self.orchestrator.generate([prompts.verification_prompt(question, excerpts)])
        except GenerationFailure as e:
            logger.warning(f"⚠️ Verification of {document_id} degraded: {e}")
            raw = ""

        return interpret_verdict(raw, citations)

    async def verify_against_task(
        self, org_id: str, document_id: str, task_title: str, task_description: str
    ) -> TaskVerificationResult:
        """Judge whether a stored document shows that a task was completed.

        The document's chunks are joined in order and cut at
        MAX_TASK_VERIFICATION_CHARS before being sent to the model.

        Raises:
            EmptyQuery: If the task title is blank
            InvalidDocument: If the document has no stored chunks
        """
        if not task_title or not task_title.strip():
            raise EmptyQuery("task title cannot be empty")

        chunks = await asyncio.to_thread(self.store.list_chunks, org_id, document_id)
        if not chunks:
            raise InvalidDocument(f"document {document_id} has no extracted content")

        text = document_text(chunks)
        prompt = prompts.task_verification_prompt(task_title, task_description or "", text)
        try:
            raw = await self.orchestrator.generate([prompt])
        except GenerationFailure as e:
            logger.warning(f"⚠️ Task verification of {document_id} degraded: {e}")
            raw = ""

        result = interpret_task_verification(raw)
        logger.info(f"✅ Task verification for {document_id}: {result.recommendation}")
        return result
