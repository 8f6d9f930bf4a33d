"""In-process document store with optimistic transactions. Used for tests and single-node dev runs."""

import asyncio
import copy
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from app.application.exceptions import TransactionConflict
from app.application.storage import Document, RetryPolicy, run_with_retries

T = TypeVar("T")

_Key = Tuple[str, str]


class _InMemoryTransaction:
    """Records the version of every document read; buffers writes until commit."""

    def __init__(self, gateway: "InMemoryDocumentGateway") -> None:
        self._gateway = gateway
        self._reads: Dict[_Key, int] = {}
        self._writes: Dict[_Key, Optional[Document]] = {}

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        key = (collection, doc_id)
        if key in self._writes:
            return copy.deepcopy(self._writes[key])
        version, doc = self._gateway._snapshot(key)
        self._reads.setdefault(key, version)
        # A networked store suspends here; concurrent transactions interleave between read and commit.
        await asyncio.sleep(0)
        return doc

    def set(self, collection: str, doc_id: str, document: Document) -> None:
        self._writes[(collection, doc_id)] = copy.deepcopy(document)

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes[(collection, doc_id)] = None


class InMemoryDocumentGateway:
    """
    Versioned dict-backed store. Every write bumps the document version (deletes
    included); a transaction commits only if every document it read is still at
    the version it observed. Implements DocumentGateway protocol.
    """

    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._docs: Dict[_Key, Document] = {}
        self._versions: Dict[_Key, int] = {}
        self._retry = retry_policy or RetryPolicy()
        self._logger = logger or logging.getLogger(__name__)
        self.conflicts = 0

    def _snapshot(self, key: _Key) -> Tuple[int, Optional[Document]]:
        doc = self._docs.get(key)
        return self._versions.get(key, 0), copy.deepcopy(doc) if doc is not None else None

    def _write(self, key: _Key, document: Optional[Document]) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1
        if document is None:
            self._docs.pop(key, None)
        else:
            self._docs[key] = copy.deepcopy(document)

    def _commit(self, tx: _InMemoryTransaction) -> None:
        # No await in here: validation and apply happen in one event-loop step.
        for key, observed in tx._reads.items():
            if self._versions.get(key, 0) != observed:
                self.conflicts += 1
                raise TransactionConflict(f"{key[0]}/{key[1]} changed since it was read")
        for key, document in tx._writes.items():
            self._write(key, document)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return self._snapshot((collection, doc_id))[1]

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        self._write((collection, doc_id), document)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._write((collection, doc_id), None)

    async def scan(
        self,
        collection: str,
        field: str,
        value: Any,
        *,
        limit: Optional[int] = None,
    ) -> List[Document]:
        await asyncio.sleep(0)
        out: List[Document] = []
        for (coll, _), doc in self._docs.items():
            if coll == collection and doc.get(field) == value:
                out.append(copy.deepcopy(doc))
                if limit is not None and len(out) >= limit:
                    break
        return out

    async def run_transaction(self, fn: Callable[[Any], Awaitable[T]]) -> T:
        async def attempt() -> T:
            tx = _InMemoryTransaction(self)
            result = await fn(tx)
            self._commit(tx)
            return result

        return await run_with_retries(attempt, self._retry, self._logger)
