"""
Document store adapter

Wraps async SQLAlchemy with the primitives the ordering core consumes:
one-shot reads, transactional read-modify-write retried on optimistic
concurrency conflicts, atomic multi-document batches, and a change feed that
fires once per committed transaction.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Type

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from content_admin.config import settings
from content_admin.database import async_session_maker
from content_admin.exceptions import EntityNotFoundError, TransactionConflictError

logger = logging.getLogger(__name__)

# Driver messages that mean "someone else won the race", not "your data is bad"
_CONFLICT_MARKERS = (
    "UNIQUE constraint failed",
    "duplicate key",
    "database is locked",
    "could not serialize",
    "deadlock detected",
)


def is_conflict(error: Exception) -> bool:
    """True when a failed transaction should be retried"""
    if isinstance(error, StaleDataError):
        return True
    if isinstance(error, (IntegrityError, OperationalError)):
        message = str(error)
        return any(marker in message for marker in _CONFLICT_MARKERS)
    return False


@dataclass(frozen=True)
class ChangeEvent:
    """Rows of one collection written by a single committed transaction"""
    collection: str
    rows: tuple  # column snapshots taken after commit
    deleted_ids: frozenset = frozenset()

    @property
    def entity_ids(self) -> List[int]:
        return [row["id"] for row in self.rows]


Listener = Callable[[ChangeEvent], Awaitable[None]]


class ChangeFeed:
    """In-process fan-out of committed changes, keyed by collection"""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {}

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(collection, []).append(listener)

        def unsubscribe():
            listeners = self._listeners.get(collection, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def listener_count(self, collection: str) -> int:
        return len(self._listeners.get(collection, []))

    async def publish(self, event: ChangeEvent):
        # Copy: listeners may unsubscribe while being notified
        for listener in list(self._listeners.get(event.collection, [])):
            try:
                await listener(event)
            except Exception as e:
                # Already committed; remaining listeners still get the event
                logger.error(f"Change listener failed for {event.collection}: {e}")


class Transaction:
    """Read/write handle passed to run_transaction callbacks.

    Every write is recorded so the store can publish one change event per
    collection after commit.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._written: List[Any] = []
        self._deleted: List[Any] = []

    async def get(self, model: Type, entity_id: int):
        return await self.session.get(model, entity_id)

    async def query(
        self,
        model: Type,
        filters: Sequence = (),
        order_by: Sequence = (),
        limit: Optional[int] = None,
    ) -> list:
        stmt = select(model).where(*filters).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    def create(self, model: Type, values: Dict[str, Any]):
        entity = model(**values)
        self.session.add(entity)
        self._track(entity)
        return entity

    def update(self, entity, values: Dict[str, Any]):
        for key, value in values.items():
            setattr(entity, key, value)
        self._track(entity)
        return entity

    async def delete(self, entity):
        await self.session.delete(entity)
        self._track(entity)
        if entity not in self._deleted:
            self._deleted.append(entity)

    async def flush(self):
        await self.session.flush()

    def _track(self, entity):
        if not any(existing is entity for existing in self._written):
            self._written.append(entity)

    def change_events(self) -> List[ChangeEvent]:
        rows: Dict[str, list] = {}
        deleted: Dict[str, set] = {}
        for entity in self._written:
            collection = entity.__tablename__
            rows.setdefault(collection, []).append(entity.to_dict())
            if any(gone is entity for gone in self._deleted):
                deleted.setdefault(collection, set()).add(entity.id)
        return [
            ChangeEvent(collection=name, rows=tuple(snapshots), deleted_ids=frozenset(deleted.get(name, ())))
            for name, snapshots in rows.items()
        ]


@dataclass
class WriteOp:
    """One operation of an atomic batch"""
    kind: str  # "create" | "update" | "delete"
    model: Type
    entity_id: Optional[int] = None
    values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, model: Type, values: Dict[str, Any]) -> "WriteOp":
        return cls("create", model, values=values)

    @classmethod
    def update(cls, model: Type, entity_id: int, values: Dict[str, Any]) -> "WriteOp":
        return cls("update", model, entity_id=entity_id, values=values)

    @classmethod
    def delete(cls, model: Type, entity_id: int) -> "WriteOp":
        return cls("delete", model, entity_id=entity_id)


class DocumentStore:
    """Store primitives used by the ordered repositories"""

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_maker,
        max_attempts: Optional[int] = None,
        retry_backoff: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.transaction_max_attempts
        self.retry_backoff = settings.transaction_retry_backoff if retry_backoff is None else retry_backoff
        self.changes = ChangeFeed()

    async def query_by(
        self,
        model: Type,
        filters: Sequence = (),
        order_by: Sequence = (),
        limit: Optional[int] = None,
    ) -> list:
        """One-shot read outside any transaction"""
        async with self.session_factory() as session:
            return await Transaction(session).query(model, filters, order_by, limit)

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[Any]]) -> Any:
        """
        Run fn inside one transaction, retrying the whole callback when a
        concurrent writer invalidated what it read.

        Raises TransactionConflictError once all attempts are used up. Any
        other exception rolls back and propagates unchanged.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            async with self.session_factory() as session:
                txn = Transaction(session)
                try:
                    async with session.begin():
                        result = await fn(txn)
                except (StaleDataError, IntegrityError, OperationalError) as e:
                    if not is_conflict(e):
                        raise
                    last_error = e
                    logger.warning(f"Transaction conflict on attempt {attempt}/{self.max_attempts}: {e}")
                    if attempt < self.max_attempts:
                        await asyncio.sleep(self.retry_backoff * (2 ** (attempt - 1)))
                    continue

            for event in txn.change_events():
                await self.changes.publish(event)
            return result

        raise TransactionConflictError(self.max_attempts, last_error)

    async def batch_write(self, ops: Sequence[WriteOp]):
        """Apply all operations atomically, in the given order"""
        async def apply(txn: Transaction):
            for op in ops:
                if op.kind == "create":
                    txn.create(op.model, op.values)
                elif op.kind in ("update", "delete"):
                    entity = await txn.get(op.model, op.entity_id)
                    if entity is None:
                        if op.kind == "delete":
                            # Deleting something already gone is not an error
                            logger.debug(f"Batch delete skipped missing {op.model.__tablename__} {op.entity_id}")
                            continue
                        raise EntityNotFoundError(op.model.__tablename__, op.entity_id)
                    if op.kind == "update":
                        txn.update(entity, op.values)
                    else:
                        await txn.delete(entity)
                else:
                    raise ValueError(f"Unknown batch operation: {op.kind}")
                # Flush per op so statements hit the database in batch order
                await txn.flush()

        await self.run_transaction(apply)


# Singleton instance
document_store = DocumentStore()
