"""RAG API routes: question answering, indexing, backfill and document verification.

Identity is set by the upstream auth layer in the X-Org-ID, X-User-ID and
X-User-Role headers.
"""

import logging

from flask import Blueprint, jsonify, request

from workrag.client.routes.config import get_config
from workrag.constants import PRIVILEGED_ROLES, ROLE_ADMIN, SOURCE_TYPES
from workrag.errors import InvalidDocument
from workrag.rag.backfill import BackfillService, JsonRecordSource
from workrag.service.async_helpers import run_async

logger = logging.getLogger(__name__)

rag_bp = Blueprint("rag", __name__)

# Record fields accepted by the index route
INDEX_FIELDS = ("title", "description", "content", "filename")


def get_identity() -> tuple[str, str, str] | None:
    """Read (org_id, user_id, role) from the request headers.

    Returns:
        The identity tuple, or None if any header is missing
    """
    org_id = request.headers.get("X-Org-ID", "").strip()
    user_id = request.headers.get("X-User-ID", "").strip()
    role = request.headers.get("X-User-Role", "").strip().lower()
    if not org_id or not user_id or not role:
        return None
    return org_id, user_id, role


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _question_from_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    question = data.get("question")
    if not isinstance(question, str) or not question.strip():
        return None
    return question


@rag_bp.route("/api/rag/query", methods=["POST"])
def query():
    """Answer a question from the caller's organization data.

    Request:
        {"question": "Which tasks are blocked?"}

    Response:
        {
            "answer": "Task 'Fix login bug' is blocked by ...",
            "sources": [
                {"source_type": "task", "source_id": "T1", "content": "...", "similarity": 0.82},
                ...
            ]
        }
    """
    config = get_config()
    logger.info("📨 Received RAG query")

    identity = get_identity()
    if identity is None:
        return _error("Missing identity headers", 401)
    if config.service is None:
        return _error("RAG service not available", 503)

    question = _question_from_body()
    if question is None:
        logger.warning("❌ Missing 'question' field in request")
        return _error("question is required", 400)

    org_id, user_id, role = identity
    logger.info(f"🔍 Query from {role} in org {org_id}: '{question[:100]}'")
    try:
        response = run_async(config.service.query(org_id, user_id, role, question))
    except ValueError as e:
        logger.warning(f"❌ Rejected query: {e}")
        return _error(str(e), 400)
    except Exception as e:
        logger.error(f"❌ Error processing query: {e}", exc_info=True)
        return _error("failed to process query", 500)

    logger.info(f"✅ Answered with {len(response.sources)} sources")
    return jsonify(response.to_dict())


@rag_bp.route("/api/rag/index", methods=["POST"])
def index_record():
    """Queue one task, issue, comment or document for indexing.

    Request:
        {"source_type": "task", "source_id": "T1", "title": "Fix login bug", "description": "..."}

    Comments and documents send "content"; task documents send "filename"
    and "content". The write happens in the background.

    Response (202):
        {"status": "queued", "source_type": "task", "source_id": "T1"}
    """
    config = get_config()

    identity = get_identity()
    if identity is None:
        return _error("Missing identity headers", 401)
    if config.indexer is None:
        return _error("indexing not available", 503)

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("JSON body is required", 400)

    source_type = data.get("source_type")
    source_id = data.get("source_id")
    if source_type not in SOURCE_TYPES:
        return _error(f"source_type must be one of {list(SOURCE_TYPES)}", 400)
    if not isinstance(source_id, str) or not source_id.strip():
        return _error("source_id is required", 400)

    fields = {}
    for name in INDEX_FIELDS:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            return _error(f"{name} must be a string", 400)
        fields[name] = value

    org_id, _, _ = identity
    try:
        config.indexer.index_record(org_id, source_type, source_id, fields)
    except InvalidDocument as e:
        return _error(str(e), 400)

    logger.info(f"📥 Queued {source_type} {source_id} for indexing in org {org_id}")
    return jsonify({"status": "queued", "source_type": source_type, "source_id": source_id}), 202


@rag_bp.route("/api/rag/index/<source_type>/<source_id>", methods=["DELETE"])
def delete_record(source_type: str, source_id: str):
    """Queue removal of one record from the index."""
    config = get_config()

    identity = get_identity()
    if identity is None:
        return _error("Missing identity headers", 401)
    if config.indexer is None:
        return _error("indexing not available", 503)
    if source_type not in SOURCE_TYPES:
        return _error(f"source_type must be one of {list(SOURCE_TYPES)}", 400)

    org_id, _, _ = identity
    config.indexer.delete_record(org_id, source_type, source_id)
    logger.info(f"🗑️ Queued removal of {source_type} {source_id} in org {org_id}")
    return jsonify({"status": "queued", "source_type": source_type, "source_id": source_id}), 202


@rag_bp.route("/api/rag/backfill", methods=["POST"])
def backfill():
    """Re-index every task and issue of the caller's organization (admin only).

    The body may carry the records inline as {"tasks": [...], "issues": [...]};
    otherwise the configured record source is used.

    Response:
        {"tasks_indexed": 4, "issues_indexed": 2, "errors": 1, "unsearchable": 0}
    """
    config = get_config()
    logger.info("📨 Received backfill request")

    identity = get_identity()
    if identity is None:
        return _error("Missing identity headers", 401)
    org_id, _, role = identity
    if role != ROLE_ADMIN:
        return _error("admin role required", 403)
    if config.service is None:
        return _error("backfill service not available", 503)

    data = request.get_json(silent=True)
    if isinstance(data, dict) and ("tasks" in data or "issues" in data):
        source = JsonRecordSource.from_data(data)
    elif config.record_source is not None:
        source = config.record_source
    else:
        return _error("no records supplied and no record source configured", 400)

    try:
        result = BackfillService(config.service, source).backfill_organization(org_id)
    except Exception as e:
        logger.error(f"❌ Backfill failed: {e}", exc_info=True)
        return _error("failed to backfill documents", 500)

    return jsonify(result.to_dict())


@rag_bp.route("/api/documents/<document_id>/verify", methods=["POST"])
def verify_document(document_id: str):
    """Answer a question about one uploaded document with a structured verdict.

    Request:
        {"question": "Does the report cover the Q3 migration?", "top_k": 5}

    Response:
        {
            "verdict": "verified",
            "confidence": 0.8,
            "answer": "...",
            "citations": [{"chunk_index": 2, "snippet": "..."}],
            "raw_model_output": ""
        }
    """
    config = get_config()
    logger.info(f"📨 Received verification request for document {document_id}")

    identity = get_identity()
    if identity is None:
        return _error("Missing identity headers", 401)
    if config.verifier is None:
        return _error("verification not available", 503)

    question = _question_from_body()
    if question is None:
        return _error("question is required", 400)

    data = request.get_json(silent=True) or {}
    top_k = data.get("top_k", 5)
    if not isinstance(top_k, int) or isinstance(top_k, bool) or top_k <= 0:
        return _error("top_k must be a positive integer", 400)

    org_id, _, _ = identity
    try:
        result = run_async(config.verifier.verify(org_id, document_id, question, top_k=top_k))
    except InvalidDocument as e:
        return _error(str(e), 404)
    except ValueError as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.error(f"❌ Error verifying document {document_id}: {e}", exc_info=True)
        return _error("failed to verify document", 500)

    logger.info(f"✅ Verdict for {document_id}: {result.verdict}")
    return jsonify(result.to_dict())


@rag_bp.route("/api/documents/<document_id>/chunks", methods=["POST"])
def ingest_document(document_id: str):
    """Store an uploaded document's extracted text as verification chunks.

    Request:
        {"text": "Full extracted text of the document"}

    Response (201):
        {"document_id": "D1", "chunks": 3}
    """
    config = get_config()
    logger.info(f"📨 Received text for document {document_id}")

    identity = get_identity()
    if identity is None:
        return _error("Missing identity headers", 401)
    if config.verifier is None:
        return _error("verification not available", 503)

    data = request.get_json(silent=True)
    text = data.get("text") if isinstance(data, dict) else None
    if not isinstance(text, str) or not text.strip():
        return _error("text is required", 400)

    org_id, _, _ = identity
    try:
        chunks = config.verifier.ingest_document(org_id, document_id, text)
    except Exception as e:
        logger.error(f"❌ Error ingesting document {document_id}: {e}", exc_info=True)
        return _error("failed to ingest document", 500)

    return jsonify({"document_id": document_id, "chunks": len(chunks)}), 201


@rag_bp.route("/api/documents/<document_id>/verify-task", methods=["POST"])
def verify_document_against_task(document_id: str):
    """Judge whether a submitted document shows an assigned task was done.

    Managers and admins only.

    Request:
        {"task_title": "Write refund policy", "task_description": "Cover the refund window"}

    Response:
        {
            "task_matches": true,
            "completed_work": "...",
            "missing_work": ["..."],
            "verification_notes": "...",
            "recommendation": "approve",
            "raw_model_output": ""
        }
    """
    config = get_config()
    logger.info(f"📨 Received task verification request for document {document_id}")

    identity = get_identity()
    if identity is None:
        return _error("Missing identity headers", 401)
    org_id, _, role = identity
    if role not in PRIVILEGED_ROLES:
        return _error("manager or admin role required", 403)
    if config.verifier is None:
        return _error("verification not available", 503)

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("task_title is required", 400)
    task_title = data.get("task_title")
    task_description = data.get("task_description", "")
    if not isinstance(task_title, str) or not task_title.strip():
        return _error("task_title is required", 400)
    if task_description is None:
        task_description = ""
    if not isinstance(task_description, str):
        return _error("task_description must be a string", 400)

    try:
        result = run_async(
            config.verifier.verify_against_task(org_id, document_id, task_title, task_description)
        )
    except InvalidDocument as e:
        return _error(str(e), 404)
    except ValueError as e:
        return _error(str(e), 400)
    except Exception as e:
        logger.error(f"❌ Error verifying document {document_id} against task: {e}", exc_info=True)
        return _error("failed to verify document", 500)

    return jsonify(result.to_dict())
