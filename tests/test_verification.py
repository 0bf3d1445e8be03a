"""Tests for per-document verification."""

import json
from unittest.mock import MagicMock

import pytest

from workrag.errors import EmptyQuery, InvalidDocument, ParseFailure
from workrag.rag.orchestrator import GenerationOrchestrator
from workrag.rag.verification import (
    Citation,
    TRUNCATION_MARKER,
    DocumentVerifier,
    document_text,
    interpret_task_verification,
    interpret_verdict,
    parse_llm_json,
)
from workrag.service.database import DocumentChunk

ORG = "org-1"

POLICY_TEXT = (
    "Refund policy. Customers may request a refund within 30 days of purchase. "
    "Refunds are issued to the original payment method. "
) * 30


def verdict_json(verdict="verified", confidence=0.8, answer="Refunds within 30 days."):
    return json.dumps({"verdict": verdict, "confidence": confidence, "answer": answer, "citations": []})


@pytest.fixture
def make_verifier(memory_store, embedder, make_backend):
    def _make(reply=None, verifier_embedder=embedder):
        backend = make_backend("primary", verdict_json() if reply is None else reply)
        orchestrator = GenerationOrchestrator(None, [backend])
        return DocumentVerifier(memory_store, verifier_embedder, orchestrator), backend

    return _make


class TestParseLlmJson:
    """Tests for parse_llm_json function."""

    def test_plain_json(self):
        assert parse_llm_json('{"verdict": "verified"}') == {"verdict": "verified"}

    def test_code_fenced_json(self):
        raw = '```json\n{"verdict": "unverified", "confidence": 0.2}\n```'
        assert parse_llm_json(raw)["verdict"] == "unverified"

    def test_json_with_preamble(self):
        raw = 'Here is my answer:\n{"verdict": "insufficient"}\nHope that helps.'
        assert parse_llm_json(raw) == {"verdict": "insufficient"}

    @pytest.mark.parametrize("raw", ["", "   ", "no json here", "[1, 2, 3]", "{broken"])
    def test_unparseable(self, raw):
        with pytest.raises(ParseFailure):
            parse_llm_json(raw)


class TestInterpretVerdict:
    """Tests for interpret_verdict function."""

    def test_well_formed(self):
        citations = [Citation(0, "Refund policy")]
        result = interpret_verdict(verdict_json(confidence=1.7), citations)

        assert result.verdict == "verified"
        assert result.confidence == 1.0
        assert result.answer == "Refunds within 30 days."
        assert result.citations == citations
        assert result.raw_model_output == ""

    def test_degrades_on_free_text(self):
        result = interpret_verdict("The document says refunds take 30 days.", [])

        assert result.verdict == "insufficient"
        assert result.confidence == 0.0
        assert result.answer == "The document says refunds take 30 days."
        assert result.raw_model_output == result.answer

    def test_unknown_verdict_degrades(self):
        result = interpret_verdict(verdict_json(verdict="probably"), [])
        assert result.verdict == "insufficient"
        assert result.confidence == 0.0

    def test_bad_confidence_becomes_zero(self):
        result = interpret_verdict(verdict_json(confidence="high"), [])
        assert result.verdict == "verified"
        assert result.confidence == 0.0


class TestIngestDocument:
    """Tests for DocumentVerifier.ingest_document."""

    def test_stores_embedded_chunks(self, make_verifier, memory_store):
        verifier, _ = make_verifier()

        stored = verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        assert len(stored) > 1
        assert [c.chunk_index for c in stored] == list(range(len(stored)))
        assert all(c.embedding for c in stored)
        assert len(memory_store.list_chunks(ORG, "D1")) == len(stored)

    def test_blank_text_stores_nothing(self, make_verifier, memory_store):
        verifier, _ = make_verifier()

        assert verifier.ingest_document(ORG, "D1", "   ") == []
        assert memory_store.list_chunks(ORG, "D1") == []

    def test_any_embedding_failure_drops_all_embeddings(self, make_verifier, embedder):
        flaky = MagicMock()
        flaky.embed.side_effect = [embedder.embed("first"), RuntimeError("down")] + [[1.0]] * 50
        verifier, _ = make_verifier(verifier_embedder=flaky)

        stored = verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        assert stored
        assert all(c.embedding is None for c in stored)


class TestVerify:
    """Tests for DocumentVerifier.verify."""

    @pytest.mark.asyncio
    async def test_verified_answer_with_citations(self, make_verifier):
        verifier, backend = make_verifier()
        verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        result = await verifier.verify(ORG, "D1", "What is the refund window?", top_k=3)

        assert result.verdict == "verified"
        assert result.confidence == 0.8
        assert len(result.citations) == 3
        assert all(len(c.snippet) <= 240 for c in result.citations)
        assert "What is the refund window?" in backend.prompts[0]
        assert "[Chunk " in backend.prompts[0]

    @pytest.mark.asyncio
    async def test_keyword_fallback_without_embeddings(self, make_verifier, memory_store):
        memory_store.store_chunks(
            ORG,
            "D1",
            ["Shipping takes five days.", "Refunds are issued within 30 days.", "Contact support."],
        )
        verifier, backend = make_verifier(verifier_embedder=None)

        result = await verifier.verify(ORG, "D1", "refunds", top_k=1)

        assert [c.chunk_index for c in result.citations] == [1]
        assert "Refunds are issued" in backend.prompts[0]

    @pytest.mark.asyncio
    async def test_unparseable_output_degrades(self, make_verifier):
        verifier, _ = make_verifier(reply="I think so.")
        verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        result = await verifier.verify(ORG, "D1", "Are refunds allowed?")

        assert result.verdict == "insufficient"
        assert result.confidence == 0.0
        assert result.raw_model_output == "I think so."

    @pytest.mark.asyncio
    async def test_generation_failure_degrades(self, make_verifier):
        verifier, _ = make_verifier(reply=RuntimeError("all down"))
        verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        result = await verifier.verify(ORG, "D1", "Are refunds allowed?")

        assert result.verdict == "insufficient"
        assert result.answer == ""
        assert result.citations

    @pytest.mark.asyncio
    async def test_document_without_chunks(self, make_verifier):
        verifier, _ = make_verifier()
        with pytest.raises(InvalidDocument):
            await verifier.verify(ORG, "missing", "anything?")

    @pytest.mark.asyncio
    async def test_blank_question(self, make_verifier):
        verifier, _ = make_verifier()
        with pytest.raises(EmptyQuery):
            await verifier.verify(ORG, "D1", " ")

    @pytest.mark.asyncio
    async def test_chunks_are_tenant_scoped(self, make_verifier):
        verifier, _ = make_verifier()
        verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        with pytest.raises(InvalidDocument):
            await verifier.verify("org-2", "D1", "refund window?")


class TestRankChunks:
    """Tests for DocumentVerifier.rank_chunks."""

    def test_cosine_ranking(self, make_verifier, embedder):
        verifier, _ = make_verifier()
        chunks = [
            DocumentChunk(ORG, "D1", 0, "printer toner", embedder.embed("printer toner")),
            DocumentChunk(ORG, "D1", 1, "refund window", embedder.embed("refund window")),
        ]

        ranked = verifier.rank_chunks("refund", chunks, 1)

        assert [c.chunk_index for c in ranked] == [1]


def task_json(**overrides):
    data = {
        "task_matches": True,
        "completed_work": "Documented the 30 day refund window.",
        "missing_work": [],
        "verification_notes": "Policy text covers the task.",
        "recommendation": "approve",
    }
    data.update(overrides)
    return json.dumps(data)


class TestDocumentText:
    """Tests for rebuilding a document from its chunks."""

    def test_overlap_is_removed(self, make_verifier, memory_store):
        verifier, _ = make_verifier()
        verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        assert document_text(memory_store.list_chunks(ORG, "D1")) == POLICY_TEXT.strip()

    def test_long_documents_are_truncated(self):
        chunks = [DocumentChunk(ORG, "D1", 0, "x" * 20_000, None)]

        text = document_text(chunks, limit=15_000)

        assert text == "x" * 15_000 + TRUNCATION_MARKER


class TestInterpretTaskVerification:
    """Tests for interpret_task_verification."""

    def test_well_formed(self):
        result = interpret_task_verification(task_json(missing_work=["Sign-off", " "]))

        assert result.task_matches is True
        assert result.recommendation == "approve"
        assert result.missing_work == ["Sign-off"]
        assert result.raw_model_output == ""

    def test_unknown_recommendation_needs_review(self):
        result = interpret_task_verification(task_json(recommendation="ship it"))
        assert result.recommendation == "needs_review"

    def test_non_boolean_match_is_false(self):
        result = interpret_task_verification(task_json(task_matches="yes"))
        assert result.task_matches is False

    def test_free_text_degrades(self):
        result = interpret_task_verification("Looks done to me.")

        assert result.task_matches is False
        assert result.recommendation == "needs_review"
        assert result.raw_model_output == "Looks done to me."


class TestVerifyAgainstTask:
    """Tests for DocumentVerifier.verify_against_task."""

    @pytest.mark.asyncio
    async def test_prompt_carries_task_and_document(self, make_verifier):
        verifier, backend = make_verifier(reply=task_json())
        verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        result = await verifier.verify_against_task(
            ORG, "D1", "Write refund policy", "Cover the refund window"
        )

        assert result.task_matches is True
        assert result.recommendation == "approve"
        prompt = backend.prompts[0]
        assert "Title: Write refund policy" in prompt
        assert "Description: Cover the refund window" in prompt
        assert "Customers may request a refund" in prompt

    @pytest.mark.asyncio
    async def test_long_document_is_truncated_in_prompt(self, make_verifier):
        verifier, backend = make_verifier(reply=task_json())
        verifier.ingest_document(ORG, "D1", "word " * 8_000)

        await verifier.verify_against_task(ORG, "D1", "Write it", "")

        assert "[content truncated for analysis]" in backend.prompts[0]

    @pytest.mark.asyncio
    async def test_generation_failure_needs_review(self, make_verifier):
        verifier, _ = make_verifier(reply=RuntimeError("all down"))
        verifier.ingest_document(ORG, "D1", POLICY_TEXT)

        result = await verifier.verify_against_task(ORG, "D1", "Write refund policy", "")

        assert result.task_matches is False
        assert result.recommendation == "needs_review"

    @pytest.mark.asyncio
    async def test_document_without_chunks(self, make_verifier):
        verifier, _ = make_verifier()
        with pytest.raises(InvalidDocument):
            await verifier.verify_against_task(ORG, "missing", "Write it", "")

    @pytest.mark.asyncio
    async def test_blank_task_title(self, make_verifier):
        verifier, _ = make_verifier()
        with pytest.raises(EmptyQuery):
            await verifier.verify_against_task(ORG, "D1", "  ", "desc")
