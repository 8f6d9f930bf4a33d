"""
Per-project sequence allocation for human-readable work item keys (PREFIX-N).

The counter lives on the project document (`issue_seq`) and is advanced with a
read-increment-write inside one storage transaction. The storage layer's
optimistic isolation is the only concurrency control: two racing allocations
cannot both commit from the same counter value, so the loser is re-run against
the winner's value. No application lock is taken.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.application.exceptions import NotFoundError
from app.application.storage import Collections, DocumentGateway, Transaction
from app.domain.validators.work_item_validator import derive_key_prefix, format_key


@dataclass(frozen=True)
class Allocation:
    """Result of one allocation: the new counter value and the key minted from it."""

    project_id: str
    sequence: int
    key: str
    prefix: str


class SequenceAllocator:
    """Mints strictly increasing, never reused sequence numbers scoped to a project."""

    def __init__(self, gateway: DocumentGateway, logger: Optional[logging.Logger] = None) -> None:
        self._gateway = gateway
        self._logger = logger or logging.getLogger(__name__)

    async def allocate(self, project_id: str) -> Allocation:
        """
        Allocate in a transaction of its own. Raises NotFoundError if the project
        does not exist, ContentionError if the retry budget is exhausted.
        """

        async def body(tx: Transaction) -> Allocation:
            return await self.allocate_in(tx, project_id)

        allocation = await self._gateway.run_transaction(body)
        self._logger.info(
            "sequence_allocated",
            extra={"project_id": project_id, "sequence": allocation.sequence, "key": allocation.key},
        )
        return allocation

    async def allocate_in(self, tx: Transaction, project_id: str) -> Allocation:
        """
        Allocate inside the caller's transaction so the counter advance commits
        together with whatever else the caller writes (e.g. the work item).
        """
        project = await tx.get(Collections.PROJECTS, project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")

        next_seq = int(project.get("issue_seq") or 0) + 1
        prefix = project.get("key_prefix")
        updated: dict[str, Any] = {**project, "issue_seq": next_seq}
        if not prefix:
            # Persisted in the same commit, so every later key uses the same prefix.
            prefix = derive_key_prefix(project.get("name"))
            updated["key_prefix"] = prefix
            self._logger.info(
                "key_prefix_derived",
                extra={"project_id": project_id, "key_prefix": prefix},
            )
        tx.set(Collections.PROJECTS, project_id, updated)
        return Allocation(
            project_id=project_id,
            sequence=next_seq,
            key=format_key(prefix, next_seq),
            prefix=prefix,
        )
