"""Redis-backed document gateway. JSON documents, per-field equality index sets, WATCH/MULTI/EXEC transactions."""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from redis.exceptions import WatchError

from app.application.exceptions import TransactionConflict
from app.application.storage import INDEXED_FIELDS, Document, RetryPolicy, run_with_retries
from app.infrastructure.cache.redis_client import RedisClient

T = TypeVar("T")

DOC_PREFIX = "doc:"
INDEX_PREFIX = "idx:"

_Key = Tuple[str, str]


def _doc_key(collection: str, doc_id: str) -> str:
    return f"{DOC_PREFIX}{collection}:{doc_id}"


def _index_key(collection: str, field: str, value: Any) -> Optional[str]:
    if value is None or isinstance(value, (list, dict)):
        return None
    if isinstance(value, bool):
        value = "true" if value else "false"
    return f"{INDEX_PREFIX}{collection}:{field}:{value}"


class _RedisTransaction:
    """WATCHes every key it reads; buffers writes until commit."""

    def __init__(self, pipe: Any) -> None:
        self._pipe = pipe
        self._observed: Dict[_Key, Optional[Document]] = {}
        self._writes: Dict[_Key, Optional[Document]] = {}

    async def _watch_and_read(self, key: _Key) -> Optional[Document]:
        if key not in self._observed:
            redis_key = _doc_key(*key)
            await self._pipe.watch(redis_key)
            raw = await self._pipe.get(redis_key)
            self._observed[key] = json.loads(raw) if raw else None
        return self._observed[key]

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        key = (collection, doc_id)
        if key in self._writes:
            return self._writes[key]
        return await self._watch_and_read(key)

    def set(self, collection: str, doc_id: str, document: Document) -> None:
        self._writes[(collection, doc_id)] = dict(document)

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes[(collection, doc_id)] = None

    async def commit(self) -> None:
        # Old versions are needed to move index entries; reading them also WATCHes them.
        previous = {key: await self._watch_and_read(key) for key in self._writes}
        self._pipe.multi()
        for (collection, doc_id), document in self._writes.items():
            old = previous[(collection, doc_id)] or {}
            new = document or {}
            for field in INDEXED_FIELDS.get(collection, ()):
                old_idx = _index_key(collection, field, old.get(field))
                new_idx = _index_key(collection, field, new.get(field))
                if old_idx == new_idx:
                    continue
                if old_idx:
                    self._pipe.srem(old_idx, doc_id)
                if new_idx:
                    self._pipe.sadd(new_idx, doc_id)
            if document is None:
                self._pipe.delete(_doc_key(collection, doc_id))
            else:
                self._pipe.set(_doc_key(collection, doc_id), json.dumps(document))
        try:
            await self._pipe.execute()
        except WatchError as e:
            raise TransactionConflict(f"watched keys changed: {e}") from e


class RedisDocumentGateway:
    """
    Stores each document as JSON under doc:{collection}:{id} and keeps
    idx:{collection}:{field}:{value} sets for the fields in INDEXED_FIELDS.
    Documents and their index entries always change in the same MULTI/EXEC.
    Implements DocumentGateway protocol.
    """

    def __init__(
        self,
        redis_client: RedisClient,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._redis = redis_client
        self._retry = retry_policy or RetryPolicy()
        self._logger = logger or logging.getLogger(__name__)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self._redis.get_json(_doc_key(collection, doc_id))

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        async def write(tx: _RedisTransaction) -> None:
            tx.set(collection, doc_id, document)

        await self.run_transaction(write)

    async def delete(self, collection: str, doc_id: str) -> None:
        async def remove(tx: _RedisTransaction) -> None:
            tx.delete(collection, doc_id)

        await self.run_transaction(remove)

    async def scan(
        self,
        collection: str,
        field: str,
        value: Any,
        *,
        limit: Optional[int] = None,
    ) -> List[Document]:
        if field not in INDEXED_FIELDS.get(collection, ()):
            raise ValueError(f"{collection}.{field} is not an indexed field")
        index_key = _index_key(collection, field, value)
        if index_key is None:
            return []
        doc_ids = sorted(await self._redis.smembers(index_key))
        docs = await self._redis.mget_json(_doc_key(collection, doc_id) for doc_id in doc_ids)
        out: List[Document] = []
        for doc in docs:
            # Index sets are updated atomically with documents; the equality re-check guards manual edits.
            if doc is not None and doc.get(field) == value:
                out.append(doc)
                if limit is not None and len(out) >= limit:
                    break
        return out

    async def run_transaction(self, fn: Callable[[Any], Awaitable[T]]) -> T:
        async def attempt() -> T:
            async with self._redis.pipeline() as pipe:
                tx = _RedisTransaction(pipe)
                result = await fn(tx)
                await tx.commit()
                return result

        return await run_with_retries(attempt, self._retry, self._logger)
