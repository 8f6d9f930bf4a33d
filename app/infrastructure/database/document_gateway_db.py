"""DB-backed document gateway. Documents live in one table; transactions compare-and-set on a version column."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.application.exceptions import TransactionConflict
from app.application.storage import Document, RetryPolicy, run_with_retries
from app.infrastructure.database.models import StoredDocument

T = TypeVar("T")

_Key = Tuple[str, str]


def _pk(key: _Key):
    return (StoredDocument.collection == key[0], StoredDocument.doc_id == key[1])


class _DbTransaction:
    """Remembers the version of every row it read (0 = absent); buffers writes until commit."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._observed: Dict[_Key, Tuple[int, Optional[Document]]] = {}
        self._writes: Dict[_Key, Optional[Document]] = {}

    async def _read(self, key: _Key) -> Tuple[int, Optional[Document]]:
        if key not in self._observed:
            result = await self._session.execute(
                select(StoredDocument.version, StoredDocument.body).where(*_pk(key))
            )
            row = result.one_or_none()
            self._observed[key] = (row.version, dict(row.body)) if row is not None else (0, None)
        return self._observed[key]

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        key = (collection, doc_id)
        if key in self._writes:
            return self._writes[key]
        return (await self._read(key))[1]

    def set(self, collection: str, doc_id: str, document: Document) -> None:
        self._writes[(collection, doc_id)] = dict(document)

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes[(collection, doc_id)] = None

    async def commit(self) -> None:
        try:
            for key in list(self._writes):
                await self._read(key)
            for key, (version, _) in self._observed.items():
                if key in self._writes:
                    await self._apply(key, version, self._writes[key])
                else:
                    current = await self._session.scalar(
                        select(StoredDocument.version).where(*_pk(key))
                    )
                    if (current or 0) != version:
                        raise TransactionConflict(f"{key[0]}/{key[1]} changed since it was read")
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise TransactionConflict(f"concurrent insert: {e.orig}") from e
        except TransactionConflict:
            await self._session.rollback()
            raise

    async def _apply(self, key: _Key, version: int, document: Optional[Document]) -> None:
        if document is None:
            if version == 0:
                return
            result = await self._session.execute(
                delete(StoredDocument).where(*_pk(key), StoredDocument.version == version)
            )
        elif version == 0:
            await self._session.execute(
                insert(StoredDocument).values(
                    collection=key[0],
                    doc_id=key[1],
                    tenant_id=document.get("tenant_id"),
                    body=document,
                    version=1,
                )
            )
            return
        else:
            result = await self._session.execute(
                update(StoredDocument)
                .where(*_pk(key), StoredDocument.version == version)
                .values(body=document, tenant_id=document.get("tenant_id"), version=version + 1)
            )
        if result.rowcount == 0:
            raise TransactionConflict(f"{key[0]}/{key[1]} changed since it was read")


class DbDocumentGateway:
    """Persists documents to the documents table. Implements DocumentGateway protocol."""

    def __init__(
        self,
        sessionmaker: async_sessionmaker,
        retry_policy: Optional[RetryPolicy] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._retry = retry_policy or RetryPolicy()
        self._logger = logger or logging.getLogger(__name__)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        async with self._sessionmaker() as session:
            body = await session.scalar(
                select(StoredDocument.body).where(*_pk((collection, doc_id)))
            )
            return dict(body) if body is not None else None

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        async def write(tx: _DbTransaction) -> None:
            tx.set(collection, doc_id, document)

        await self.run_transaction(write)

    async def delete(self, collection: str, doc_id: str) -> None:
        async def remove(tx: _DbTransaction) -> None:
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
        if field == "tenant_id":
            condition = StoredDocument.tenant_id == value
        else:
            condition = StoredDocument.body[field].as_string() == str(value)
        stmt = select(StoredDocument.body).where(StoredDocument.collection == collection, condition)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._sessionmaker() as session:
            result = await session.execute(stmt)
            # as_string() compares text; the equality re-check keeps typed semantics.
            return [dict(body) for body in result.scalars().all() if body.get(field) == value]

    async def run_transaction(self, fn: Callable[[Any], Awaitable[T]]) -> T:
        async def attempt() -> T:
            async with self._sessionmaker() as session:
                tx = _DbTransaction(session)
                result = await fn(tx)
                await tx.commit()
                return result

        return await run_with_retries(attempt, self._retry, self._logger)
