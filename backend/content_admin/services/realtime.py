"""
Realtime projection of sibling lists

Subscribers get the complete, order-sorted sibling list of one scope right
away and again after every committed change touching that scope. They never
see partial lists or speculative orders, only what the store committed.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List

from content_admin.services.document_store import ChangeEvent

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[Dict[str, Any]]], Any]


class Subscription:
    """One subscriber of one scope"""

    def __init__(self, projection: "RealtimeProjection", scope, callback: SnapshotCallback):
        self.projection = projection
        self.scope = scope
        self.callback = callback
        self.active = True
        # Deliveries are serialized so snapshots arrive in commit order
        self._lock = asyncio.Lock()
        self._detach: Callable[[], None] = lambda: None

    async def deliver(self):
        async with self._lock:
            if not self.active:
                return
            items = [entity.to_dict() for entity in await self.projection.repository.siblings(self.scope)]
            if not self.active:
                return
            result = self.callback(items)
            if inspect.isawaitable(result):
                await result

    async def on_change(self, event: ChangeEvent):
        resolver = self.projection.repository.resolver
        if any(resolver.matches(self.scope, row) for row in event.rows):
            await self.deliver()

    def unsubscribe(self):
        """Stop delivery and release the change listener. Safe to call repeatedly."""
        if not self.active:
            return
        self.active = False
        self._detach()
        logger.debug(f"Unsubscribed from {self.scope}")


class RealtimeProjection:
    """Push-based sorted view over one ordered repository"""

    def __init__(self, repository):
        self.repository = repository

    async def subscribe(self, scope, callback: SnapshotCallback) -> Callable[[], None]:
        """Deliver the current snapshot, then one per relevant commit.

        Returns an idempotent unsubscribe function.
        """
        self.repository.resolver.filters(scope)  # rejects a scope of another collection
        subscription = Subscription(self, scope, callback)
        subscription._detach = self.repository.store.changes.subscribe(
            self.repository.collection, subscription.on_change
        )
        try:
            await subscription.deliver()
        except Exception:
            subscription.unsubscribe()
            raise

        logger.debug(f"Subscribed to {scope}")
        return subscription.unsubscribe
