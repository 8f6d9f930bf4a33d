"""
Field-level diff of two work item snapshots into human-readable change descriptions.

Only the fields in TRACKED_FIELDS are compared, always in that order, so the
audit trail for a given transition is deterministic. Each field declares its
own equality and rendering; a missing value renders as UNSET.
"""

import operator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Mapping, Optional, Tuple

from app.domain.models.work_item import WorkItem

UNSET = "unset"
NO_LABELS = "none"
DESCRIPTION_PREVIEW_LENGTH = 60


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ARCHIVED = "archived"
    DELETED = "deleted"


@dataclass(frozen=True)
class ChangeDescription:
    """One audit-worthy change. UPDATED carries field, label and rendered old/new values."""

    kind: ChangeKind
    field: Optional[str] = None
    label: Optional[str] = None
    previous: Optional[str] = None
    next: Optional[str] = None
    summary: Optional[str] = None

    @property
    def message(self) -> str:
        if self.kind is ChangeKind.UPDATED:
            return f"{self.label} changed: {self.previous} → {self.next}"
        return self.summary or self.kind.value


def _render_text(value: Any, names: Mapping[str, str]) -> str:
    return value if value else UNSET


def _render_preview(value: Any, names: Mapping[str, str]) -> str:
    if not value:
        return UNSET
    if len(value) <= DESCRIPTION_PREVIEW_LENGTH:
        return value
    return value[:DESCRIPTION_PREVIEW_LENGTH].rstrip() + "…"


def _render_choice(value: Any, names: Mapping[str, str]) -> str:
    return value.label if value is not None else UNSET


def _render_actor(value: Any, names: Mapping[str, str]) -> str:
    if not value:
        return UNSET
    return names.get(value, value)


def _render_date(value: Any, names: Mapping[str, str]) -> str:
    return value.isoformat() if value is not None else UNSET


def _render_labels(value: Any, names: Mapping[str, str]) -> str:
    return ", ".join(sorted(value)) if value else NO_LABELS


def _same_text(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "") == (b or "")


def _same_set(a: Any, b: Any) -> bool:
    return frozenset(a or ()) == frozenset(b or ())


@dataclass(frozen=True)
class TrackedField:
    name: str
    label: str
    render: Callable[[Any, Mapping[str, str]], str]
    equal: Callable[[Any, Any], bool] = operator.eq

    def read(self, item: WorkItem) -> Any:
        return getattr(item, self.name)


TRACKED_FIELDS: Tuple[TrackedField, ...] = (
    TrackedField("title", "Title", _render_text),
    TrackedField("description", "Description", _render_preview, _same_text),
    TrackedField("status", "Status", _render_choice),
    TrackedField("priority", "Priority", _render_choice),
    TrackedField("assignee_id", "Assignee", _render_actor, _same_text),
    TrackedField("sub_assignee_id", "Sub-assignee", _render_actor, _same_text),
    TrackedField("start_date", "Start date", _render_date),
    TrackedField("due_date", "Due date", _render_date),
    TrackedField("labels", "Labels", _render_labels, _same_set),
)


def diff(
    previous: Optional[WorkItem],
    next: WorkItem,
    names: Optional[Mapping[str, str]] = None,
) -> List[ChangeDescription]:
    """
    Describe what changed from previous to next.

    previous=None is the creation case and yields exactly one CREATED
    description. Identical snapshots yield an empty list. `names` maps actor
    ids to display names for assignee rendering; unknown ids render as-is.
    """
    if previous is None:
        return [ChangeDescription(kind=ChangeKind.CREATED, summary=f"Created: {next.title}")]
    if previous.id != next.id:
        raise ValueError(f"Cannot diff different entities {previous.id} and {next.id}")

    names = names or {}
    changes: List[ChangeDescription] = []
    for tracked in TRACKED_FIELDS:
        old, new = tracked.read(previous), tracked.read(next)
        if tracked.equal(old, new):
            continue
        changes.append(
            ChangeDescription(
                kind=ChangeKind.UPDATED,
                field=tracked.name,
                label=tracked.label,
                previous=tracked.render(old, names),
                next=tracked.render(new, names),
            )
        )
    return changes


def archived() -> ChangeDescription:
    return ChangeDescription(kind=ChangeKind.ARCHIVED, summary="Archived")


def deleted(item: WorkItem) -> ChangeDescription:
    return ChangeDescription(kind=ChangeKind.DELETED, summary=f"Deleted: {item.title}")
