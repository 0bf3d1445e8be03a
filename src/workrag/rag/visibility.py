"""Role-based visibility rules for similarity search.

A rule answers "may this record be returned?" in two forms: ``allows`` for
stores that scan records in-process, and ``to_rql`` for RavenDB, where the
rule becomes part of the vector query itself. Applying the rule inside the
search keeps a member's top-k the true top-k among records they may see.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from workrag.constants import (
    SOURCE_COMMENT,
    SOURCE_ISSUE,
    SOURCE_TASK,
    SOURCE_TASK_DOCUMENT,
)


class VisibilityRule(Protocol):
    """Predicate over (source_type, source_id) that can be compiled to RQL."""

    def allows(self, source_type: str, source_id: str) -> bool: ...

    def to_rql(self, params: dict[str, Any]) -> str:
        """Return a where-clause fragment (or "" for no restriction).

        Query parameters the fragment refers to are added to ``params``.
        """
        ...


class OwnershipResolver(Protocol):
    """Answers which tasks and issues a user owns inside an organization.

    Task ownership means assignee or creator; issue ownership means assignee
    or reporter.
    """

    def owned_task_ids(self, org_id: str, user_id: str) -> set[str]: ...

    def owned_issue_ids(self, org_id: str, user_id: str) -> set[str]: ...


@dataclass(frozen=True)
class OrgVisibility:
    """Everything in the organization, optionally narrowed to some source types."""

    allowed_source_types: tuple[str, ...] = ()

    def allows(self, source_type: str, source_id: str) -> bool:
        return not self.allowed_source_types or source_type in self.allowed_source_types

    def to_rql(self, params: dict[str, Any]) -> str:
        if not self.allowed_source_types:
            return ""
        params["allowed_source_types"] = list(self.allowed_source_types)
        return "source_type in ($allowed_source_types)"


@dataclass(frozen=True)
class MemberVisibility:
    """What a member may retrieve.

    - tasks they are assigned to or created
    - issues they are assigned to or reported
    - every comment (comments are not scoped to an entity)
    - task documents attached to a task they own

    Plain uploaded documents are never visible through this rule.
    """

    user_id: str
    task_ids: frozenset[str] = field(default_factory=frozenset)
    issue_ids: frozenset[str] = field(default_factory=frozenset)

    def allows(self, source_type: str, source_id: str) -> bool:
        if source_type == SOURCE_COMMENT:
            return True
        if source_type in (SOURCE_TASK, SOURCE_TASK_DOCUMENT):
            return source_id in self.task_ids
        if source_type == SOURCE_ISSUE:
            return source_id in self.issue_ids
        return False

    def to_rql(self, params: dict[str, Any]) -> str:
        clauses = [f"source_type = '{SOURCE_COMMENT}'"]
        if self.task_ids:
            params["member_task_ids"] = sorted(self.task_ids)
            clauses.append(
                f"(source_type in ('{SOURCE_TASK}', '{SOURCE_TASK_DOCUMENT}')"
                " and source_id in ($member_task_ids))"
            )
        if self.issue_ids:
            params["member_issue_ids"] = sorted(self.issue_ids)
            clauses.append(
                f"(source_type = '{SOURCE_ISSUE}' and source_id in ($member_issue_ids))"
            )
        return "(" + " or ".join(clauses) + ")"


def member_visibility(resolver: OwnershipResolver | None, org_id: str, user_id: str) -> MemberVisibility:
    """Build the member rule from the ownership facts of one user.

    Without a resolver the member owns nothing and only sees comments.
    """
    if resolver is None:
        return MemberVisibility(user_id=user_id)
    return MemberVisibility(
        user_id=user_id,
        task_ids=frozenset(str(t) for t in resolver.owned_task_ids(org_id, user_id)),
        issue_ids=frozenset(str(i) for i in resolver.owned_issue_ids(org_id, user_id)),
    )


class StaticOwnershipResolver:
    """In-memory ownership table, keyed by organization.

    Useful for tests and for embedding workrag next to a service that already
    has ownership data loaded.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, dict[str, set[str]]] = {}
        self._issues: dict[str, dict[str, set[str]]] = {}

    def add_task(
        self,
        org_id: str,
        task_id: str,
        assigned_to: str | None = None,
        created_by: str | None = None,
    ) -> None:
        owners = {u for u in (assigned_to, created_by) if u}
        self._tasks.setdefault(org_id, {})[task_id] = owners

    def add_issue(
        self,
        org_id: str,
        issue_id: str,
        assigned_to: str | None = None,
        reported_by: str | None = None,
    ) -> None:
        owners = {u for u in (assigned_to, reported_by) if u}
        self._issues.setdefault(org_id, {})[issue_id] = owners

    def owned_task_ids(self, org_id: str, user_id: str) -> set[str]:
        return {tid for tid, owners in self._tasks.get(org_id, {}).items() if user_id in owners}

    def owned_issue_ids(self, org_id: str, user_id: str) -> set[str]:
        return {iid for iid, owners in self._issues.get(org_id, {}).items() if user_id in owners}
