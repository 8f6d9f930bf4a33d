"""
Client-side query over a store that only offers single-field equality scans.

One equality predicate (normally the tenant scope, which every document
carries) is executed server-side. Additional authoritative scope sources, such
as legacy records that predate tenant scoping, are scanned concurrently and
unioned. The union is deduplicated by primary key; scope, every remaining
predicate, sorting and pagination are applied in memory.

Scaling ceiling: memory and latency are proportional to the unfiltered size of
the scanned scope, not to the size of the answer. This is acceptable only
because tenant scope bounds data volume. Scans larger than `max_scan` raise
ResultSetTooLargeError instead of growing without bound.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app.application.exceptions import ResultSetTooLargeError
from app.application.storage import Document, DocumentGateway
from app.domain.validators.work_item_validator import validate_tenant_id


class Op(str, Enum):
    EQ = "eq"
    NE = "ne"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    GTE = "gte"
    LTE = "lte"
    IS_NULL = "is_null"
    SEARCH = "search"


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


@dataclass(frozen=True)
class Predicate:
    """A single field condition evaluated against a stored document."""

    field: str
    op: Op
    value: Any = None

    def matches(self, doc: Document) -> bool:
        actual = doc.get(self.field)
        if self.op is Op.EQ:
            return actual == self.value
        if self.op is Op.NE:
            return actual != self.value
        if self.op is Op.IN:
            return actual in self.value
        if self.op is Op.NOT_IN:
            return actual not in self.value
        if self.op is Op.CONTAINS:
            return isinstance(actual, (list, tuple, set, frozenset)) and self.value in actual
        if self.op is Op.GTE:
            return not _is_empty(actual) and actual >= self.value
        if self.op is Op.LTE:
            return not _is_empty(actual) and actual <= self.value
        if self.op is Op.IS_NULL:
            return _is_empty(actual) == bool(self.value)
        if self.op is Op.SEARCH:
            return not _is_empty(actual) and str(self.value).casefold() in str(actual).casefold()
        raise ValueError(f"Unsupported operator {self.op}")


def eq(field: str, value: Any) -> Predicate:
    return Predicate(field, Op.EQ, value)


def ne(field: str, value: Any) -> Predicate:
    return Predicate(field, Op.NE, value)


def is_in(field: str, values: Iterable[Any]) -> Predicate:
    return Predicate(field, Op.IN, frozenset(values))


def not_in(field: str, values: Iterable[Any]) -> Predicate:
    return Predicate(field, Op.NOT_IN, frozenset(values))


def contains(field: str, value: Any) -> Predicate:
    return Predicate(field, Op.CONTAINS, value)


def gte(field: str, value: Any) -> Predicate:
    return Predicate(field, Op.GTE, value)


def lte(field: str, value: Any) -> Predicate:
    return Predicate(field, Op.LTE, value)


def is_null(field: str, null: bool = True) -> Predicate:
    return Predicate(field, Op.IS_NULL, null)


def search(field: str, text: str) -> Predicate:
    return Predicate(field, Op.SEARCH, text)


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False

    @classmethod
    def parse(cls, raw: str) -> "SortKey":
        """'-updated_at' sorts descending, 'key' ascending."""
        raw = raw.strip()
        if raw.startswith("-"):
            return cls(raw[1:], descending=True)
        return cls(raw.lstrip("+"))


@dataclass(frozen=True)
class Page:
    offset: int = 0
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be >= 1")

    def slice(self, docs: List[Document]) -> List[Document]:
        end = None if self.limit is None else self.offset + self.limit
        return docs[self.offset:end]


@dataclass(frozen=True)
class ScopeSource:
    """
    Alternative equality source authoritative for the tenant scope. Admits only
    documents that match it and carry no tenant at all, never another tenant's.
    """

    field: str
    value: Any

    def admits(self, doc: Document, tenant_field: str) -> bool:
        return doc.get(self.field) == self.value and _is_empty(doc.get(tenant_field))


@dataclass(frozen=True)
class QueryResult:
    items: List[Document]
    total: int
    scanned: int


def sort_documents(docs: Iterable[Document], sort: Sequence[SortKey], primary_key: str = "id") -> List[Document]:
    """Stable multi-key sort; missing values sort last in either direction; ties break on primary key."""
    ordered = sorted(docs, key=lambda d: str(d.get(primary_key)))
    for sort_key in reversed(sort):
        def key(doc: Document, _field: str = sort_key.field, _desc: bool = sort_key.descending) -> Tuple:
            value = doc.get(_field)
            missing = _is_empty(value)
            # reverse=True flips the flag too, so encode "missing" so it still lands last.
            flag = (0 if missing else 1) if _desc else (1 if missing else 0)
            return (flag, "" if missing else value)

        ordered.sort(key=key, reverse=sort_key.descending)
    return ordered


class ReadFanIn:
    """Single reusable query path for one collection."""

    def __init__(
        self,
        gateway: DocumentGateway,
        collection: str,
        *,
        tenant_field: str = "tenant_id",
        primary_key: str = "id",
        max_scan: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._gateway = gateway
        self._collection = collection
        self._tenant_field = tenant_field
        self._primary_key = primary_key
        self._max_scan = max_scan
        self._logger = logger or logging.getLogger(__name__)

    def plan(
        self,
        tenant_id: str,
        predicates: Sequence[Predicate],
        scan_field: Optional[str] = None,
        fallback_scopes: Sequence[ScopeSource] = (),
    ) -> List[Tuple[str, Any]]:
        """
        Server-side scans to run: the tenant scope (or the eq predicate on
        scan_field when one is named), plus one scan per fallback scope.
        """
        if scan_field is None or scan_field == self._tenant_field:
            primary = (self._tenant_field, tenant_id)
        else:
            candidates = [p for p in predicates if p.field == scan_field and p.op is Op.EQ]
            if not candidates:
                raise ValueError(f"scan_field {scan_field!r} has no equality predicate to scan by")
            primary = (scan_field, candidates[0].value)
        scans = [primary]
        for scope in fallback_scopes:
            if (scope.field, scope.value) not in scans:
                scans.append((scope.field, scope.value))
        return scans

    async def _scan(self, field: str, value: Any) -> List[Document]:
        limit = self._max_scan + 1 if self._max_scan is not None else None
        docs = await self._gateway.scan(self._collection, field, value, limit=limit)
        if self._max_scan is not None and len(docs) > self._max_scan:
            raise ResultSetTooLargeError(
                f"Scan of {self._collection}.{field} exceeded {self._max_scan} documents; narrow the query"
            )
        return docs

    def _in_scope(self, doc: Document, tenant_id: str, fallback_scopes: Sequence[ScopeSource]) -> bool:
        if doc.get(self._tenant_field) == tenant_id:
            return True
        return any(scope.admits(doc, self._tenant_field) for scope in fallback_scopes)

    async def query(
        self,
        tenant_id: str,
        predicates: Sequence[Predicate] = (),
        sort: Sequence[SortKey] = (),
        page: Page = Page(),
        *,
        scan_field: Optional[str] = None,
        fallback_scopes: Sequence[ScopeSource] = (),
    ) -> QueryResult:
        """Scan, union, deduplicate, then filter, sort and paginate in memory."""
        validate_tenant_id(tenant_id)
        scans = self.plan(tenant_id, predicates, scan_field, fallback_scopes)
        results = await asyncio.gather(*(self._scan(field, value) for field, value in scans))

        merged: Dict[Any, Document] = {}
        for docs in results:
            for doc in docs:
                merged.setdefault(doc[self._primary_key], doc)

        matched = [
            doc
            for doc in merged.values()
            if self._in_scope(doc, tenant_id, fallback_scopes)
            and all(p.matches(doc) for p in predicates)
        ]
        ordered = sort_documents(matched, sort, self._primary_key)
        self._logger.debug(
            "fan_in_query",
            extra={
                "collection": self._collection,
                "scans": len(scans),
                "scanned": len(merged),
                "matched": len(matched),
            },
        )
        return QueryResult(items=page.slice(ordered), total=len(matched), scanned=len(merged))
