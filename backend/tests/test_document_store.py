"""
Document Store Tests
"""

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from content_admin.exceptions import EntityNotFoundError, TransactionConflictError
from content_admin.models.category import Category
from content_admin.services.category_service import CategoryService
from content_admin.services.document_store import ChangeEvent, ChangeFeed, DocumentStore, WriteOp, is_conflict


def test_is_conflict_classifies_errors():
    assert is_conflict(StaleDataError("version mismatch"))
    assert is_conflict(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: categories.order")))
    assert not is_conflict(IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: categories.title_en")))
    assert not is_conflict(ValueError("boom"))


async def test_run_transaction_retries_conflicts_then_succeeds(store: DocumentStore):
    attempts = []

    async def flaky(txn):
        attempts.append(1)
        if len(attempts) < 3:
            raise StaleDataError("someone else wrote first")
        return txn.create(Category, {"title_en": "Law", "order": 1})

    category = await store.run_transaction(flaky)

    assert len(attempts) == 3
    assert category.id is not None
    assert len(await store.query_by(Category)) == 1


async def test_run_transaction_surfaces_conflict_after_max_attempts():
    store = DocumentStore(max_attempts=2, retry_backoff=0)
    attempts = []

    async def always_stale(txn):
        attempts.append(1)
        raise StaleDataError("lost the race")

    with pytest.raises(TransactionConflictError) as exc_info:
        await store.run_transaction(always_stale)

    assert len(attempts) == 2
    assert exc_info.value.attempts == 2


async def test_run_transaction_propagates_other_errors_without_retry(store: DocumentStore):
    attempts = []

    async def broken(txn):
        attempts.append(1)
        txn.create(Category, {"title_en": "Half written", "order": 1})
        await txn.flush()
        raise RuntimeError("unexpected")

    with pytest.raises(RuntimeError):
        await store.run_transaction(broken)

    assert len(attempts) == 1
    # Rolled back
    assert await store.query_by(Category) == []


async def test_create_retries_when_computed_order_is_taken(store: DocumentStore, monkeypatch):
    service = CategoryService(store)
    await service.create_category({"title_en": "Law"})

    real_next_order = service.categories._next_order
    calls = []

    async def stale_next_order(txn, scope):
        calls.append(1)
        # First attempt sees the world before "Law" was created
        if len(calls) == 1:
            return 1
        return await real_next_order(txn, scope)

    monkeypatch.setattr(service.categories, "_next_order", stale_next_order)

    framework = await service.create_category({"title_en": "Framework"})

    assert len(calls) == 2
    assert framework.order == 2


async def test_batch_write_is_atomic(store: DocumentStore):
    service = CategoryService(store)
    law = await service.create_category({"title_en": "Law"})

    with pytest.raises(EntityNotFoundError):
        await store.batch_write([
            WriteOp.delete(Category, law.id),
            WriteOp.update(Category, 999, {"title_en": "Missing"}),
        ])

    assert [category.id for category in await store.query_by(Category)] == [law.id]


async def test_batch_write_skips_missing_delete_targets(store: DocumentStore):
    service = CategoryService(store)
    law = await service.create_category({"title_en": "Law"})

    await store.batch_write([WriteOp.delete(Category, 999), WriteOp.delete(Category, law.id)])

    assert await store.query_by(Category) == []


async def test_change_feed_publishes_once_per_transaction(store: DocumentStore):
    events = []

    async def listener(event: ChangeEvent):
        events.append(event)

    store.changes.subscribe("categories", listener)

    await store.batch_write([
        WriteOp.create(Category, {"title_en": "A", "order": 1}),
        WriteOp.create(Category, {"title_en": "B", "order": 2}),
    ])

    assert len(events) == 1
    assert sorted(row["title_en"] for row in events[0].rows) == ["A", "B"]
    assert events[0].deleted_ids == frozenset()


async def test_change_feed_reports_deleted_ids(store: DocumentStore):
    service = CategoryService(store)
    law = await service.create_category({"title_en": "Law"})
    events = []

    async def listener(event: ChangeEvent):
        events.append(event)

    store.changes.subscribe("categories", listener)
    await service.categories.delete(law.id)

    assert events[-1].deleted_ids == frozenset({law.id})
    assert events[-1].entity_ids == [law.id]


async def test_change_feed_survives_failing_listener():
    feed = ChangeFeed()
    received = []

    async def broken(event):
        raise RuntimeError("subscriber bug")

    async def healthy(event):
        received.append(event)

    feed.subscribe("categories", broken)
    feed.subscribe("categories", healthy)

    await feed.publish(ChangeEvent(collection="categories", rows=({"id": 1},)))

    assert len(received) == 1


async def test_change_feed_unsubscribe_is_idempotent():
    feed = ChangeFeed()

    async def listener(event):
        pass

    unsubscribe = feed.subscribe("glossary_terms", listener)
    assert feed.listener_count("glossary_terms") == 1

    unsubscribe()
    unsubscribe()

    assert feed.listener_count("glossary_terms") == 0
