"""
Document storage protocol. Application layer depends on this; infrastructure implements it.

The store is an opaque transactional key-value service: point reads and writes,
single-field equality scans (no composite indexes), and optimistic
read-modify-write transactions that are retried as a whole on conflict.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, TypeVar

from app.application.exceptions import ContentionError, TransactionConflict

T = TypeVar("T")

Document = Dict[str, Any]


class Collections:
    """Collection names shared by every backend."""

    PROJECTS = "projects"
    WORK_ITEMS = "work_items"
    COMMENTS = "comments"
    ACTIVITY = "activity"
    NOTIFICATIONS = "notifications"


# Fields each collection can be scanned by. Backends that keep their own
# equality indexes (Redis) maintain exactly these.
INDEXED_FIELDS: Dict[str, tuple] = {
    Collections.PROJECTS: ("tenant_id", "created_by"),
    Collections.WORK_ITEMS: ("tenant_id", "project_id", "assignee_id", "reporter_id", "key", "status"),
    Collections.COMMENTS: ("tenant_id", "work_item_id"),
    Collections.ACTIVITY: ("tenant_id", "entity_id", "project_id", "actor_id"),
    Collections.NOTIFICATIONS: ("tenant_id", "recipient_id"),
}


class Transaction(Protocol):
    """Handle passed to a transaction function. Writes are buffered until commit."""

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Transactional read; the document's version is checked at commit."""
        ...

    def set(self, collection: str, doc_id: str, document: Document) -> None:
        """Buffer a full-document write."""
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        """Buffer a delete."""
        ...


class DocumentGateway(Protocol):
    """Protocol for the document store. Every backend must honour retry-on-conflict for run_transaction."""

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        ...

    async def scan(
        self,
        collection: str,
        field: str,
        value: Any,
        *,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Return documents whose `field` equals `value`. Order is unspecified."""
        ...

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Run fn inside an optimistic transaction and commit its writes atomically.
        fn is re-run from scratch on conflict; after the retry budget is spent,
        raises ContentionError. Exceptions raised by fn abort without retry.
        """
        ...


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff and jitter for conflicting transactions."""

    max_attempts: int = 5
    backoff_base_ms: int = 20
    backoff_max_ms: int = 500

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryPolicy":
        return cls(
            max_attempts=settings.allocator_max_attempts,
            backoff_base_ms=settings.allocator_backoff_base_ms,
            backoff_max_ms=settings.allocator_backoff_max_ms,
        )

    def delay_seconds(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based)."""
        backoff = min(self.backoff_base_ms * (2 ** (attempt - 1)), self.backoff_max_ms)
        return (backoff + random.uniform(0, backoff)) / 1000.0


async def run_with_retries(
    attempt: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    logger: logging.Logger,
) -> T:
    """
    Call attempt() until it returns without TransactionConflict, at most
    policy.max_attempts times. Raises ContentionError when the budget is spent.
    """
    for attempt_no in range(1, policy.max_attempts + 1):
        try:
            return await attempt()
        except TransactionConflict as e:
            if attempt_no >= policy.max_attempts:
                logger.warning(
                    "transaction_contention_exhausted",
                    extra={"attempts": attempt_no, "error": str(e)},
                )
                raise ContentionError(
                    f"Transaction aborted after {attempt_no} conflicting attempts",
                    attempts=attempt_no,
                ) from e
            delay = policy.delay_seconds(attempt_no)
            logger.info(
                "transaction_conflict_retry",
                extra={"attempt": attempt_no, "delay_seconds": round(delay, 4)},
            )
            await asyncio.sleep(delay)
    raise ContentionError("Transaction was never attempted", attempts=0)
