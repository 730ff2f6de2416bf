"""
Ordered sibling repositories

One generic repository keeps a strict total order over sibling entities.
It is instantiated once per entity family with a scope resolver (which rows
count as siblings), a display field (read-time tie breaker) and a neighbour
policy for moves.

Orders start at 1, are unique within a scope and may have gaps after
deletions. Creation appends at max + 1; moves swap the order values of the
subject and its neighbour inside one transaction.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Type

from sqlalchemy import func

from content_admin.exceptions import EntityNotFoundError, ValidationError
from content_admin.services.cache import cache_service
from content_admin.services.document_store import DocumentStore, Transaction
from content_admin.services.realtime import RealtimeProjection

logger = logging.getLogger(__name__)


class NeighborPolicy(str, Enum):
    ADJACENT = "adjacent"  # neighbour must sit at order +/- 1, a gap makes the move a no-op
    NEAREST = "nearest"    # closest sibling below/above, steps over gaps


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class SiblingScope:
    """A set of entities sharing one order sequence"""
    collection: str
    parent_id: Optional[int] = None

    @property
    def is_global(self) -> bool:
        return self.parent_id is None

    def __str__(self) -> str:
        return self.collection if self.is_global else f"{self.collection}[{self.parent_id}]"


class ScopeResolver:
    """Decides what counts as a sibling for one entity family.

    Every ordering operation (next order, neighbour lookup, batch reorder,
    projection) goes through the same resolver, so two rows of different
    scopes are never compared.
    """

    def __init__(self, model: Type, parent_field: Optional[str] = None):
        self.model = model
        self.parent_field = parent_field

    @property
    def collection(self) -> str:
        return self.model.__tablename__

    @property
    def per_parent(self) -> bool:
        return self.parent_field is not None

    def scope(self, parent_id: Optional[int] = None) -> SiblingScope:
        if self.per_parent and parent_id is None:
            raise ValidationError(f"{self.collection} are ordered per {self.parent_field}, which is required")
        if not self.per_parent and parent_id is not None:
            raise ValidationError(f"{self.collection} are ordered globally and take no parent")
        return SiblingScope(self.collection, parent_id)

    def scope_of(self, entity) -> SiblingScope:
        if self.per_parent:
            return SiblingScope(self.collection, getattr(entity, self.parent_field))
        return SiblingScope(self.collection)

    def filters(self, scope: SiblingScope) -> list:
        if scope.collection != self.collection:
            raise ValidationError(f"Scope {scope} does not belong to {self.collection}")
        if self.per_parent:
            return [getattr(self.model, self.parent_field) == scope.parent_id]
        return []

    def scope_values(self, scope: SiblingScope) -> Dict[str, Any]:
        """Column values that place a new row inside the scope"""
        return {self.parent_field: scope.parent_id} if self.per_parent else {}

    def matches(self, scope: SiblingScope, row: Dict[str, Any]) -> bool:
        if not self.per_parent:
            return True
        return row.get(self.parent_field) == scope.parent_id


class OrderedRepository:
    """CRUD plus ordering for one entity family"""

    def __init__(
        self,
        store: DocumentStore,
        model: Type,
        name_field: str,
        parent_field: Optional[str] = None,
        neighbor_policy: NeighborPolicy = NeighborPolicy.ADJACENT,
    ):
        self.store = store
        self.model = model
        self.name_field = name_field
        self.resolver = ScopeResolver(model, parent_field)
        self.neighbor_policy = neighbor_policy
        self.projection = RealtimeProjection(self)

    @property
    def collection(self) -> str:
        return self.model.__tablename__

    def scope(self, parent_id: Optional[int] = None) -> SiblingScope:
        return self.resolver.scope(parent_id)

    # Order Assigner

    async def next_order(self, scope: SiblingScope) -> int:
        """Order a new entity would get in scope: highest existing + 1, or 1"""
        top = await self.store.query_by(
            self.model,
            filters=self.resolver.filters(scope),
            order_by=[self.model.order.desc()],
            limit=1,
        )
        return top[0].order + 1 if top else 1

    async def _next_order(self, txn: Transaction, scope: SiblingScope) -> int:
        top = await txn.query(
            self.model,
            filters=self.resolver.filters(scope),
            order_by=[self.model.order.desc()],
            limit=1,
        )
        return top[0].order + 1 if top else 1

    # Reads

    async def get(self, entity_id: int):
        rows = await self.store.query_by(self.model, filters=[self.model.id == entity_id])
        if not rows:
            raise EntityNotFoundError(self.collection, entity_id)
        return rows[0]

    async def siblings(self, scope: SiblingScope) -> list:
        """Siblings in ascending order, ties broken by name (case-insensitive)"""
        filters = self.resolver.filters(scope)
        if self.resolver.per_parent:
            # Per-parent lists are filtered in the store and sorted here
            rows = await self.store.query_by(self.model, filters=filters)
            return sorted(rows, key=self.sort_key)
        name = getattr(self.model, self.name_field)
        return await self.store.query_by(
            self.model,
            filters=filters,
            order_by=[self.model.order.asc(), func.lower(name).asc()],
        )

    async def snapshot(self, scope: SiblingScope) -> List[Dict[str, Any]]:
        """Sorted sibling list as plain dicts, served from cache when possible"""
        generation = await cache_service.scope_generation(scope.collection, scope.parent_id)
        cached_result = await cache_service.get_snapshot(scope.collection, scope.parent_id, generation)
        if cached_result is not None:
            logger.debug(f"Cache hit for {scope}")
            return cached_result

        rows = [entity.to_dict() for entity in await self.siblings(scope)]
        await cache_service.set_snapshot(scope.collection, scope.parent_id, generation, rows)
        return rows

    async def subscribe(self, scope: SiblingScope, callback) -> Callable[[], None]:
        """Realtime sorted sibling list of scope; returns an idempotent unsubscribe"""
        return await self.projection.subscribe(scope, callback)

    def sort_key(self, entity):
        name = getattr(entity, self.name_field) or ""
        return (entity.order, name.casefold())

    # Writes

    async def before_create(self, txn: Transaction, scope: SiblingScope, values: Dict[str, Any]):
        """Hook for family-specific checks run inside the create transaction"""

    async def create(self, values: Dict[str, Any], parent_id: Optional[int] = None):
        """Insert a new entity at the end of its scope.

        The max + 1 read and the insert share one transaction; if a concurrent
        create takes the same order first, the unique constraint rejects ours
        and the whole read-then-insert is retried.
        """
        scope = self.scope(parent_id)

        async def insert(txn: Transaction):
            await self.before_create(txn, scope, values)
            data = dict(values)
            data.update(self.resolver.scope_values(scope))
            data["order"] = await self._next_order(txn, scope)
            entity = txn.create(self.model, data)
            await txn.flush()
            return entity

        try:
            entity = await self.store.run_transaction(insert)
        except Exception as e:
            logger.error(f"Error creating {self.collection} in {scope}: {e}")
            raise

        logger.info(f"Created {self.collection} {entity.id} at order {entity.order} in {scope}")
        await self._invalidate_cache(scope)
        return entity

    async def update(self, entity_id: int, values: Dict[str, Any]):
        """Update content fields; order and scope are not editable here"""
        protected = {"id", "order", "version", "created_at", "updated_at"}
        if self.resolver.parent_field:
            protected.add(self.resolver.parent_field)
        changes = {key: value for key, value in values.items() if key not in protected}

        async def apply(txn: Transaction):
            entity = await txn.get(self.model, entity_id)
            if entity is None:
                raise EntityNotFoundError(self.collection, entity_id)
            return txn.update(entity, changes)

        try:
            entity = await self.store.run_transaction(apply)
        except Exception as e:
            logger.error(f"Error updating {self.collection} {entity_id}: {e}")
            raise

        await self._invalidate_cache(self.resolver.scope_of(entity))
        return entity

    async def delete(self, entity_id: int):
        """Delete one entity; the gap it leaves is kept"""
        async def remove(txn: Transaction):
            entity = await txn.get(self.model, entity_id)
            if entity is None:
                raise EntityNotFoundError(self.collection, entity_id)
            await txn.delete(entity)
            return entity

        try:
            entity = await self.store.run_transaction(remove)
        except Exception as e:
            logger.error(f"Error deleting {self.collection} {entity_id}: {e}")
            raise

        await self._invalidate_cache(self.resolver.scope_of(entity))
        return entity

    # Swap-Based Mover

    async def move_up(self, entity_id: int, parent_id: Optional[int] = None, current_order: Optional[int] = None) -> bool:
        """Swap with the previous sibling. Returns False when nothing moved."""
        return await self._move(entity_id, Direction.UP, parent_id, current_order)

    async def move_down(
        self,
        entity_id: int,
        parent_id: Optional[int] = None,
        current_order: Optional[int] = None,
        max_order: Optional[int] = None,
    ) -> bool:
        """Swap with the next sibling. Returns False when nothing moved."""
        return await self._move(entity_id, Direction.DOWN, parent_id, current_order, max_order)

    async def _find_neighbor(self, txn: Transaction, scope: SiblingScope, current: int, direction: Direction):
        filters = self.resolver.filters(scope)
        order = self.model.order

        if self.neighbor_policy == NeighborPolicy.ADJACENT:
            if direction == Direction.UP and current <= 1:
                return None
            target = current - 1 if direction == Direction.UP else current + 1
            rows = await txn.query(self.model, filters=filters + [order == target], limit=1)
        elif direction == Direction.UP:
            rows = await txn.query(self.model, filters=filters + [order < current], order_by=[order.desc()], limit=1)
        else:
            rows = await txn.query(self.model, filters=filters + [order > current], order_by=[order.asc()], limit=1)

        return rows[0] if rows else None

    async def _move(
        self,
        entity_id: int,
        direction: Direction,
        parent_id: Optional[int],
        hinted_order: Optional[int],
        hinted_max: Optional[int] = None,
    ) -> bool:
        async def swap(txn: Transaction):
            subject = await txn.get(self.model, entity_id)
            if subject is None:
                raise EntityNotFoundError(self.collection, entity_id)

            scope = self.resolver.scope_of(subject)
            if parent_id is not None and scope.parent_id != parent_id:
                raise ValidationError(f"{self.collection} {entity_id} does not belong to {self.resolver.parent_field}={parent_id}")

            # The caller's view may be stale; only the order read here counts
            current = subject.order
            if hinted_order is not None and hinted_order != current:
                logger.info(f"Stale order hint for {self.collection} {entity_id}: client sent {hinted_order}, stored {current}")
            if hinted_max is not None and direction == Direction.DOWN and current >= hinted_max:
                logger.debug(f"Client believes {self.collection} {entity_id} is last in {scope}, checking anyway")

            neighbor = await self._find_neighbor(txn, scope, current, direction)
            if neighbor is None:
                return None

            target = neighbor.order
            # Park the subject on a negative order so the unique (scope, order)
            # constraint holds after every statement of the swap
            txn.update(subject, {"order": -subject.id})
            await txn.flush()
            txn.update(neighbor, {"order": current})
            await txn.flush()
            txn.update(subject, {"order": target})
            return scope, neighbor.id, target

        try:
            outcome = await self.store.run_transaction(swap)
        except Exception as e:
            logger.error(f"Error moving {self.collection} {entity_id} {direction.value}: {e}")
            raise

        if outcome is None:
            logger.debug(f"{self.collection} {entity_id} already at the {'top' if direction == Direction.UP else 'bottom'} of its scope")
            return False

        scope, neighbor_id, target = outcome
        logger.info(f"Moved {self.collection} {entity_id} {direction.value} to order {target}, swapped with {neighbor_id}")
        await self._invalidate_cache(scope)
        return True

    # Batch reorder

    async def reorder(self, scope: SiblingScope, ordered_ids: Sequence[int]) -> list:
        """Renumber a whole scope 1..n following ordered_ids.

        ordered_ids must list every sibling exactly once; anything else is
        rejected without writing.
        """
        if len(set(ordered_ids)) != len(ordered_ids):
            raise ValidationError("Reorder list contains duplicate ids")

        async def renumber(txn: Transaction):
            siblings = await txn.query(self.model, filters=self.resolver.filters(scope))
            by_id = {entity.id: entity for entity in siblings}
            if set(by_id) != set(ordered_ids):
                missing = sorted(set(by_id) - set(ordered_ids))
                unknown = sorted(set(ordered_ids) - set(by_id))
                raise ValidationError(f"Reorder list does not match {scope}: missing {missing}, unknown {unknown}")

            changed = [
                (by_id[entity_id], position)
                for position, entity_id in enumerate(ordered_ids, start=1)
                if by_id[entity_id].order != position
            ]
            if not changed:
                return [by_id[entity_id] for entity_id in ordered_ids]

            for entity, _ in changed:
                txn.update(entity, {"order": -entity.id})
            await txn.flush()
            for entity, position in changed:
                txn.update(entity, {"order": position})
            return [by_id[entity_id] for entity_id in ordered_ids]

        try:
            entities = await self.store.run_transaction(renumber)
        except Exception as e:
            logger.error(f"Error reordering {scope}: {e}")
            raise

        await self._invalidate_cache(scope)
        return entities

    async def _invalidate_cache(self, scope: SiblingScope):
        await cache_service.invalidate_scope(scope.collection, scope.parent_id)
