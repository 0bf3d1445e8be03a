"""Tests for the Flask application module."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from workrag.client.app import app, initialize_services
from workrag.client.routes.config import RouteConfig, get_config, init_config, reset_config
from workrag.errors import InvalidDocument
from workrag.rag.backfill import JsonRecordSource
from workrag.rag.dispatch import ImmediateDispatcher
from workrag.rag.indexer import Indexer
from workrag.rag.service import Service
from workrag.rag.verification import DocumentVerifier, TaskVerificationResult, VerificationResult

ORG = "org-1"

ADMIN = {"X-Org-ID": ORG, "X-User-ID": "u-1", "X-User-Role": "admin"}
MEMBER = {"X-Org-ID": ORG, "X-User-ID": "u-2", "X-User-Role": "member"}


@pytest.fixture
def service(memory_store, embedder, make_backend):
    service = Service(memory_store, embedder, [make_backend("primary", "The login bug is open.")])
    service.index_document(ORG, "task", "T1", "Task: Fix login bug\n\nUsers cannot log in")
    service.index_document(ORG, "task", "T2", "Task: Login audit\n\nReview login attempts")
    return service


@pytest.fixture
def mock_config(service, memory_store, embedder):
    """Create a RouteConfig wired to an in-memory service."""
    config = RouteConfig()
    config.service = service
    config.verifier = DocumentVerifier(memory_store, embedder, service.orchestrator)
    config.indexer = Indexer(service, ImmediateDispatcher())
    config.store_backend = "memory"
    return config


@pytest.fixture
def client(mock_config):
    with patch("workrag.client.routes.rag.get_config", return_value=mock_config), patch(
        "workrag.client.routes.health.get_config", return_value=mock_config
    ):
        with app.test_client() as client:
            yield client


def post_json(client, url, body, headers=None):
    return client.post(url, data=json.dumps(body), content_type="application/json", headers=headers or {})


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_check_returns_status(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["status"] == "healthy"
        assert data["rag_service"] == "initialized"
        assert data["verification"] == "initialized"
        assert data["document_store"] == "memory"
        assert data["generation_backends"] == ["primary"]

    def test_health_when_disabled(self):
        with patch("workrag.client.routes.health.get_config", return_value=RouteConfig()):
            with app.test_client() as client:
                data = json.loads(client.get("/health").data)

        assert data["rag_service"] == "disabled"
        assert data["generation_backends"] == []


class TestQueryEndpoint:
    """Tests for the /api/rag/query endpoint."""

    def test_admin_query(self, client):
        response = post_json(client, "/api/rag/query", {"question": "login problem"}, ADMIN)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["answer"] == "The login bug is open."
        assert {s["source_id"] for s in data["sources"]} == {"T1", "T2"}
        assert all(0.0 <= s["similarity"] <= 1.0 for s in data["sources"])

    def test_member_query_is_filtered(self, client):
        response = post_json(client, "/api/rag/query", {"question": "login problem"}, MEMBER)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert [s["source_id"] for s in data["sources"]] == ["T2"]

    def test_missing_identity(self, client):
        response = post_json(client, "/api/rag/query", {"question": "login"}, {"X-Org-ID": ORG})
        assert response.status_code == 401

    @pytest.mark.parametrize("body", [{}, {"question": "   "}, {"question": 42}])
    def test_missing_question(self, client, body):
        response = post_json(client, "/api/rag/query", body, ADMIN)

        assert response.status_code == 400
        assert "question" in json.loads(response.data)["error"]

    def test_invalid_role(self, client):
        headers = dict(ADMIN, **{"X-User-Role": "guest"})
        response = post_json(client, "/api/rag/query", {"question": "login"}, headers)

        assert response.status_code == 400
        assert "invalid role" in json.loads(response.data)["error"]

    def test_service_unavailable(self):
        with patch("workrag.client.routes.rag.get_config", return_value=RouteConfig()):
            with app.test_client() as client:
                response = post_json(client, "/api/rag/query", {"question": "login"}, ADMIN)

        assert response.status_code == 503

    def test_unexpected_error(self, mock_config, client):
        mock_config.service = MagicMock()
        mock_config.service.query = AsyncMock(side_effect=RuntimeError("boom"))

        response = post_json(client, "/api/rag/query", {"question": "login"}, ADMIN)

        assert response.status_code == 500


class TestIndexEndpoint:
    """Tests for the /api/rag/index endpoints."""

    def test_index_task(self, client, memory_store):
        body = {"source_type": "task", "source_id": "T3", "title": "Rotate keys", "description": "Quarterly"}

        response = post_json(client, "/api/rag/index", body, MEMBER)

        assert response.status_code == 202
        assert json.loads(response.data)["status"] == "queued"
        assert memory_store.get(ORG, "task", "T3").content == "Task: Rotate keys\n\nQuarterly"

    def test_index_comment(self, client, memory_store):
        body = {"source_type": "comment", "source_id": "C1", "content": "Reproduced on Android"}

        response = post_json(client, "/api/rag/index", body, ADMIN)

        assert response.status_code == 202
        assert memory_store.get(ORG, "comment", "C1") is not None

    @pytest.mark.parametrize(
        "body",
        [
            {"source_type": "epic", "source_id": "E1", "title": "x"},
            {"source_type": "task", "title": "x"},
            {"source_type": "task", "source_id": "T3", "title": 7},
        ],
    )
    def test_invalid_body(self, client, body):
        response = post_json(client, "/api/rag/index", body, ADMIN)
        assert response.status_code == 400

    def test_delete(self, client, memory_store):
        response = client.delete("/api/rag/index/task/T1", headers=ADMIN)

        assert response.status_code == 202
        assert memory_store.get(ORG, "task", "T1") is None

    def test_delete_unknown_type(self, client):
        response = client.delete("/api/rag/index/epic/E1", headers=ADMIN)
        assert response.status_code == 400

    def test_missing_identity(self, client):
        response = post_json(client, "/api/rag/index", {"source_type": "task", "source_id": "T3"})
        assert response.status_code == 401

    def test_indexer_unavailable(self):
        with patch("workrag.client.routes.rag.get_config", return_value=RouteConfig()):
            with app.test_client() as client:
                response = post_json(
                    client, "/api/rag/index", {"source_type": "task", "source_id": "T3"}, ADMIN
                )

        assert response.status_code == 503


class TestBackfillEndpoint:
    """Tests for the /api/rag/backfill endpoint."""

    def test_inline_records(self, client, memory_store):
        body = {
            "tasks": [{"id": "T3", "title": "Rotate keys", "description": "Quarterly"}],
            "issues": [{"id": "I1", "title": "Printer jam", "description": ""}, {"title": "no id"}],
        }
        response = post_json(client, "/api/rag/backfill", body, ADMIN)

        assert response.status_code == 200
        assert json.loads(response.data) == {
            "tasks_indexed": 1,
            "issues_indexed": 1,
            "errors": 1,
            "unsearchable": 0,
        }
        assert memory_store.get(ORG, "task", "T3") is not None

    def test_configured_record_source(self, mock_config, client):
        mock_config.record_source = JsonRecordSource.from_data(
            {"tasks": [{"id": "T5", "title": "Ship it", "description": ""}]}
        )

        response = post_json(client, "/api/rag/backfill", {}, ADMIN)

        assert response.status_code == 200
        assert json.loads(response.data)["tasks_indexed"] == 1

    def test_no_records_available(self, client):
        response = post_json(client, "/api/rag/backfill", {}, ADMIN)
        assert response.status_code == 400

    @pytest.mark.parametrize("role", ["manager", "member"])
    def test_admin_only(self, client, role):
        headers = dict(ADMIN, **{"X-User-Role": role})
        response = post_json(client, "/api/rag/backfill", {"tasks": []}, headers)

        assert response.status_code == 403


class TestVerifyEndpoint:
    """Tests for the /api/documents/<id>/verify endpoint."""

    def test_verify_document(self, mock_config, client, make_backend):
        mock_config.service.orchestrator.backends = [
            make_backend(
                "primary",
                '{"verdict": "verified", "confidence": 0.9, "answer": "Yes.", "citations": []}',
            )
        ]
        mock_config.verifier.ingest_document(ORG, "D1", "The report covers the Q3 migration.")

        response = post_json(
            client, "/api/documents/D1/verify", {"question": "Does it cover Q3?", "top_k": 2}, ADMIN
        )

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["verdict"] == "verified"
        assert data["confidence"] == 0.9
        assert data["citations"][0]["chunk_index"] == 0

    def test_unknown_document(self, client):
        response = post_json(client, "/api/documents/missing/verify", {"question": "Q?"}, MEMBER)
        assert response.status_code == 404

    @pytest.mark.parametrize("top_k", [0, -1, "3", True])
    def test_bad_top_k(self, client, top_k):
        response = post_json(
            client, "/api/documents/D1/verify", {"question": "Q?", "top_k": top_k}, ADMIN
        )
        assert response.status_code == 400

    def test_missing_question(self, client):
        response = post_json(client, "/api/documents/D1/verify", {}, ADMIN)
        assert response.status_code == 400

    def test_verifier_unavailable(self):
        with patch("workrag.client.routes.rag.get_config", return_value=RouteConfig()):
            with app.test_client() as client:
                response = post_json(client, "/api/documents/D1/verify", {"question": "Q?"}, ADMIN)

        assert response.status_code == 503

    def test_passes_org_and_top_k(self, mock_config, client):
        mock_config.verifier = MagicMock()
        mock_config.verifier.verify = AsyncMock(
            return_value=VerificationResult(verdict="unverified", confidence=0.3, answer="No.")
        )

        response = post_json(
            client, "/api/documents/D9/verify", {"question": "Q?", "top_k": 3}, ADMIN
        )

        assert response.status_code == 200
        mock_config.verifier.verify.assert_awaited_once_with(ORG, "D9", "Q?", top_k=3)

    def test_invalid_document_error(self, mock_config, client):
        mock_config.verifier = MagicMock()
        mock_config.verifier.verify = AsyncMock(side_effect=InvalidDocument("no content"))

        response = post_json(client, "/api/documents/D9/verify", {"question": "Q?"}, ADMIN)

        assert response.status_code == 404


class TestIngestEndpoint:
    """Tests for the /api/documents/<id>/chunks endpoint."""

    def test_ingest_then_verify(self, mock_config, client, make_backend, memory_store):
        mock_config.service.orchestrator.backends = [
            make_backend("primary", '{"verdict": "verified", "confidence": 0.7, "answer": "Yes."}')
        ]

        response = post_json(
            client, "/api/documents/D2/chunks", {"text": "The runbook restarts the API."}, MEMBER
        )

        assert response.status_code == 201
        assert json.loads(response.data) == {"document_id": "D2", "chunks": 1}
        assert len(memory_store.list_chunks(ORG, "D2")) == 1

        verify = post_json(client, "/api/documents/D2/verify", {"question": "Restart?"}, MEMBER)
        assert json.loads(verify.data)["verdict"] == "verified"

    @pytest.mark.parametrize("body", [{}, {"text": "  "}, {"text": 5}])
    def test_missing_text(self, client, body):
        response = post_json(client, "/api/documents/D2/chunks", body, ADMIN)
        assert response.status_code == 400

    def test_verifier_unavailable(self):
        with patch("workrag.client.routes.rag.get_config", return_value=RouteConfig()):
            with app.test_client() as client:
                response = post_json(client, "/api/documents/D2/chunks", {"text": "x"}, ADMIN)

        assert response.status_code == 503


class TestVerifyTaskEndpoint:
    """Tests for the /api/documents/<id>/verify-task endpoint."""

    def test_verify_against_task(self, mock_config, client, make_backend):
        mock_config.service.orchestrator.backends = [
            make_backend(
                "primary",
                json.dumps(
                    {
                        "task_matches": True,
                        "completed_work": "Migration plan written.",
                        "missing_work": ["Rollback steps"],
                        "verification_notes": "Mostly complete.",
                        "recommendation": "needs_review",
                    }
                ),
            )
        ]
        mock_config.verifier.ingest_document(ORG, "D1", "The report covers the Q3 migration plan.")

        response = post_json(
            client,
            "/api/documents/D1/verify-task",
            {"task_title": "Plan Q3 migration", "task_description": "Include rollback"},
            headers=dict(ADMIN, **{"X-User-Role": "manager"}),
        )

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["task_matches"] is True
        assert data["missing_work"] == ["Rollback steps"]
        assert data["recommendation"] == "needs_review"

    def test_member_is_forbidden(self, client):
        response = post_json(client, "/api/documents/D1/verify-task", {"task_title": "Plan"}, MEMBER)
        assert response.status_code == 403

    @pytest.mark.parametrize("body", [{}, {"task_title": " "}, {"task_title": "Plan", "task_description": 3}])
    def test_bad_body(self, client, body):
        response = post_json(client, "/api/documents/D1/verify-task", body, ADMIN)
        assert response.status_code == 400

    def test_unknown_document(self, client):
        response = post_json(client, "/api/documents/missing/verify-task", {"task_title": "Plan"}, ADMIN)
        assert response.status_code == 404

    def test_passes_task_fields(self, mock_config, client):
        mock_config.verifier = MagicMock()
        mock_config.verifier.verify_against_task = AsyncMock(
            return_value=TaskVerificationResult(task_matches=False, recommendation="reject")
        )

        response = post_json(
            client, "/api/documents/D9/verify-task", {"task_title": "Plan"}, ADMIN
        )

        assert json.loads(response.data)["recommendation"] == "reject"
        mock_config.verifier.verify_against_task.assert_awaited_once_with(ORG, "D9", "Plan", "")


class TestRouteConfig:
    """Tests for the shared route configuration."""

    def test_init_and_reset(self):
        service = MagicMock()
        try:
            init_config(service=service, store_backend="memory")
            assert get_config().service is service
            assert get_config().store_backend == "memory"
        finally:
            reset_config()
        assert get_config().service is None


class TestInitializeServices:
    """Tests for initialize_services."""

    @patch("workrag.client.app.init_config")
    @patch("workrag.client.app.create_rag_service")
    @patch("workrag.client.app.create_store")
    def test_wires_service_and_verifier(self, mock_create_store, mock_create_service, mock_init, monkeypatch):
        monkeypatch.setenv("RAG_ENABLED", "true")
        monkeypatch.setenv("DOCUMENT_STORE", "memory")
        monkeypatch.setenv("BACKFILL_RECORDS_FILE", "/tmp/records.json")

        initialize_services()

        kwargs = mock_init.call_args.kwargs
        assert kwargs["service"] is mock_create_service.return_value
        assert isinstance(kwargs["verifier"], DocumentVerifier)
        assert isinstance(kwargs["indexer"], Indexer)
        assert kwargs["indexer"].enabled
        kwargs["indexer"].shutdown()
        assert isinstance(kwargs["record_source"], JsonRecordSource)
        assert kwargs["store_backend"] == "memory"

    @patch("workrag.client.app.init_config")
    @patch("workrag.client.app.create_store")
    def test_disabled(self, mock_create_store, mock_init, monkeypatch):
        monkeypatch.setenv("RAG_ENABLED", "false")

        initialize_services()

        mock_create_store.assert_not_called()
        mock_init.assert_not_called()

    @patch("workrag.client.app.init_config")
    @patch("workrag.client.app.create_rag_service", return_value=None)
    @patch("workrag.client.app.create_store")
    def test_service_unavailable(self, mock_create_store, mock_create_service, mock_init, monkeypatch):
        monkeypatch.setenv("RAG_ENABLED", "true")

        initialize_services()

        mock_init.assert_not_called()


class TestMain:
    """Tests for the main entry point."""

    @patch("workrag.client.app.app.run")
    @patch("workrag.client.app.initialize_services")
    def test_main_starts_flask_app(self, mock_initialize, mock_run, monkeypatch):
        from workrag.client.app import main

        monkeypatch.setenv("FLASK_HOST", "127.0.0.1")
        monkeypatch.setenv("FLASK_PORT", "5050")
        monkeypatch.setenv("FLASK_ENV", "production")

        main()

        mock_initialize.assert_called_once()
        mock_run.assert_called_once_with(host="127.0.0.1", port=5050, debug=False)
