"""No-throw indexing facade for the task, issue, comment and document domains.

Business code calls these methods after its own writes succeed. Work is
handed to a dispatcher and every failure is logged there, so indexing can
never fail or slow down the mutation that triggered it.
"""

import logging

from workrag.constants import (
    SOURCE_COMMENT,
    SOURCE_DOCUMENT,
    SOURCE_ISSUE,
    SOURCE_TASK,
    SOURCE_TASK_DOCUMENT,
)
from workrag.errors import InvalidDocument
from workrag.rag.config import RAGSettings
from workrag.rag.dispatch import BackgroundDispatcher, Dispatcher, ImmediateDispatcher
from workrag.rag.service import Service

logger = logging.getLogger(__name__)


def is_blank(*values: str | None) -> bool:
    return all(not v or not v.strip() for v in values)


def task_content(title: str, description: str) -> str:
    return f"Task: {title}\n\n{description}"


def issue_content(title: str, description: str) -> str:
    return f"Issue: {title}\n\n{description}"


def comment_content(content: str) -> str:
    return f"Comment: {content}"


def document_content(title: str, content: str) -> str:
    return f"Document: {title}\n\n{content}"


def task_document_content(filename: str, content: str) -> str:
    return f"Task Document: {filename}\nContent: {content}"


class Indexer:
    """Keeps the RAG index in step with business records.

    An Indexer built without a service (RAG disabled) accepts every call
    and does nothing.
    """

    def __init__(self, service: Service | None, dispatcher: Dispatcher | None = None) -> None:
        self.service = service
        self.dispatcher = dispatcher or BackgroundDispatcher()

    @property
    def enabled(self) -> bool:
        return self.service is not None

    def _index(self, org_id: str, source_type: str, source_id: str, content: str) -> None:
        if self.service is None:
            return
        self.dispatcher.submit(
            self.service.index_document,
            org_id,
            source_type,
            source_id,
            content,
            description=f"Indexing {source_type} {source_id}",
        )

    def _delete(self, org_id: str, source_type: str, source_id: str) -> None:
        if self.service is None:
            return
        self.dispatcher.submit(
            self.service.delete_document,
            org_id,
            source_type,
            source_id,
            description=f"Removing {source_type} {source_id} from index",
        )

    def index_task(self, org_id: str, task_id: str, title: str, description: str) -> None:
        if is_blank(title, description):
            return
        self._index(org_id, SOURCE_TASK, task_id, task_content(title, description))

    def index_issue(self, org_id: str, issue_id: str, title: str, description: str) -> None:
        if is_blank(title, description):
            return
        self._index(org_id, SOURCE_ISSUE, issue_id, issue_content(title, description))

    def index_comment(self, org_id: str, comment_id: str, content: str) -> None:
        if is_blank(content):
            return
        self._index(org_id, SOURCE_COMMENT, comment_id, comment_content(content))

    def index_document(self, org_id: str, document_id: str, title: str, content: str) -> None:
        if is_blank(content):
            return
        self._index(org_id, SOURCE_DOCUMENT, document_id, document_content(title, content))

    def index_task_document(self, org_id: str, task_id: str, filename: str, content: str) -> None:
        """Index a file attached to a task; it is keyed by the task id."""
        if is_blank(content):
            return
        self._index(
            org_id, SOURCE_TASK_DOCUMENT, task_id, task_document_content(filename, content)
        )

    def delete_task(self, org_id: str, task_id: str) -> None:
        self._delete(org_id, SOURCE_TASK, task_id)

    def delete_issue(self, org_id: str, issue_id: str) -> None:
        self._delete(org_id, SOURCE_ISSUE, issue_id)

    def delete_comment(self, org_id: str, comment_id: str) -> None:
        self._delete(org_id, SOURCE_COMMENT, comment_id)

    def delete_document(self, org_id: str, document_id: str) -> None:
        self._delete(org_id, SOURCE_DOCUMENT, document_id)

    def delete_task_document(self, org_id: str, task_id: str) -> None:
        self._delete(org_id, SOURCE_TASK_DOCUMENT, task_id)

    def index_record(self, org_id: str, source_type: str, source_id: str, fields: dict) -> None:
        """Index one record given its raw fields, dispatching on source_type.

        Raises:
            InvalidDocument: If source_type is not an indexable type
        """
        if source_type == SOURCE_TASK:
            self.index_task(org_id, source_id, fields.get("title"), fields.get("description"))
        elif source_type == SOURCE_ISSUE:
            self.index_issue(org_id, source_id, fields.get("title"), fields.get("description"))
        elif source_type == SOURCE_COMMENT:
            self.index_comment(org_id, source_id, fields.get("content"))
        elif source_type == SOURCE_DOCUMENT:
            self.index_document(org_id, source_id, fields.get("title") or "", fields.get("content"))
        elif source_type == SOURCE_TASK_DOCUMENT:
            self.index_task_document(
                org_id, source_id, fields.get("filename") or "", fields.get("content")
            )
        else:
            raise InvalidDocument(f"unknown source type: {source_type!r}")

    def delete_record(self, org_id: str, source_type: str, source_id: str) -> None:
        if source_type not in _DELETERS:
            raise InvalidDocument(f"unknown source type: {source_type!r}")
        _DELETERS[source_type](self, org_id, source_id)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with wait=True, finish what is queued first."""
        self.dispatcher.shutdown(wait=wait)


_DELETERS = {
    SOURCE_TASK: Indexer.delete_task,
    SOURCE_ISSUE: Indexer.delete_issue,
    SOURCE_COMMENT: Indexer.delete_comment,
    SOURCE_DOCUMENT: Indexer.delete_document,
    SOURCE_TASK_DOCUMENT: Indexer.delete_task_document,
}


def create_indexer(settings: RAGSettings | None = None, service: Service | None = None) -> Indexer:
    """Create an Indexer that runs its work on a background thread pool.

    Args:
        settings: RAG settings; read from the environment when None
        service: RAG service, or None to build a no-op indexer
    """
    if settings is None:
        settings = RAGSettings.from_env()
    if service is None or not settings.enabled:
        logger.info("ℹ️ Indexing disabled; index calls will be ignored")
        return Indexer(None, ImmediateDispatcher())
    logger.info(f"✅ Background indexer ready with {settings.indexing_workers} worker(s)")
    return Indexer(service, BackgroundDispatcher(settings.indexing_workers))
