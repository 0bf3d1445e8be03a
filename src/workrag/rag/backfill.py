"""Bulk re-indexing of an organization's existing tasks and issues."""

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Protocol

from workrag.constants import SOURCE_ISSUE, SOURCE_TASK
from workrag.rag.indexer import is_blank, issue_content, task_content
from workrag.rag.service import Service

logger = logging.getLogger(__name__)


class MalformedRecord(ValueError):
    """A source record lacks an id or has non-text fields."""


class RecordSource(Protocol):
    """Streams the business records of one organization.

    Each record is a mapping with at least ``id``, ``title`` and
    ``description``.
    """

    def iter_tasks(self, org_id: str) -> Iterable[dict[str, Any]]: ...

    def iter_issues(self, org_id: str) -> Iterable[dict[str, Any]]: ...


@dataclass
class BackfillResult:
    tasks_indexed: int = 0
    issues_indexed: int = 0
    errors: int = 0
    unsearchable: int = 0

    @property
    def indexed(self) -> int:
        return self.tasks_indexed + self.issues_indexed

    def to_dict(self) -> dict:
        return asdict(self)


def _record_fields(record: Any) -> tuple[str, str, str]:
    if not isinstance(record, dict):
        raise MalformedRecord(f"expected a mapping, got {type(record).__name__}")

    record_id = record.get("id")
    if record_id is None or not str(record_id).strip():
        raise MalformedRecord("record has no id")

    title = record.get("title") or ""
    description = record.get("description") or ""
    if not isinstance(title, str) or not isinstance(description, str):
        raise MalformedRecord(f"record {record_id} has non-text title or description")
    return str(record_id), title, description


class BackfillService:
    """Rebuilds the index for tasks and issues that predate indexing.

    Safe to re-run: records are upserted by key. Per-record problems are
    counted in ``errors`` and never stop the batch.
    """

    def __init__(self, service: Service, source: RecordSource) -> None:
        self.service = service
        self.source = source

    def backfill_organization(self, org_id: str) -> BackfillResult:
        logger.info(f"🔄 Backfilling organization {org_id}")
        result = BackfillResult()

        tasks, task_errors, task_unsearchable = self._index_all(
            org_id, SOURCE_TASK, self.source.iter_tasks, task_content
        )
        issues, issue_errors, issue_unsearchable = self._index_all(
            org_id, SOURCE_ISSUE, self.source.iter_issues, issue_content
        )

        result.tasks_indexed = tasks
        result.issues_indexed = issues
        result.errors = task_errors + issue_errors
        result.unsearchable = task_unsearchable + issue_unsearchable

        logger.info(
            f"✅ Backfill of {org_id} done: {tasks} tasks, {issues} issues, "
            f"{result.errors} errors, {result.unsearchable} without embedding"
        )
        return result

    def _index_all(self, org_id, source_type, iter_records, build_content) -> tuple[int, int, int]:
        indexed = errors = unsearchable = 0

        try:
            records: Iterator[Any] = iter(iter_records(org_id))
        except Exception as e:
            logger.error(f"❌ Could not list {source_type}s for backfill: {e}")
            return 0, 1, 0

        while True:
            try:
                record = next(records)
            except StopIteration:
                break
            except Exception as e:
                logger.error(f"❌ Error reading {source_type}s: {e}")
                errors += 1
                break

            try:
                record_id, title, description = _record_fields(record)
                if is_blank(title, description):
                    logger.debug(f"Skipping {source_type} {record_id}: no title or description")
                    continue
                doc = self.service.index_document(
                    org_id, source_type, record_id, build_content(title, description)
                )
            except Exception as e:
                logger.warning(f"⚠️ Failed to index {source_type}: {e}")
                errors += 1
                continue

            indexed += 1
            if doc is not None and not doc.searchable:
                unsearchable += 1

        return indexed, errors, unsearchable


class JsonRecordSource:
    """Reads tasks and issues from a JSON file.

    The file holds ``{"tasks": [...], "issues": [...]}``. Records that carry
    an ``org_id`` are only returned for that organization.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: dict | None = None

    @classmethod
    def from_data(cls, data: dict) -> "JsonRecordSource":
        """Wrap already-decoded records, e.g. a request body."""
        source = cls("<inline>")
        source._data = data
        return source

    def _load(self) -> dict:
        if self._data is None:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"{self.path} must contain a JSON object")
            self._data = data
        return self._data

    def _records(self, key: str, org_id: str) -> Iterator[Any]:
        for record in self._load().get(key, []):
            if isinstance(record, dict) and record.get("org_id") not in (None, org_id):
                continue
            yield record

    def iter_tasks(self, org_id: str) -> Iterator[Any]:
        return self._records("tasks", org_id)

    def iter_issues(self, org_id: str) -> Iterator[Any]:
        return self._records("issues", org_id)
