"""
Realtime Projection Tests
"""

import pytest

from content_admin.exceptions import ValidationError
from content_admin.services.category_service import CategoryService
from content_admin.services.ordering import SiblingScope


def subcategory_data(title: str) -> dict:
    return {"title_en": title, "title_ar": title, "content_en": title, "content_ar": title}


@pytest.fixture
def service(store) -> CategoryService:
    return CategoryService(store)


class Recorder:
    """Collects every snapshot delivered to it"""

    def __init__(self):
        self.snapshots = []

    def __call__(self, items):
        self.snapshots.append(items)

    def titles(self, index: int = -1):
        return [item["title_en"] for item in self.snapshots[index]]


async def test_subscribe_delivers_current_snapshot(service: CategoryService):
    for title in ("Law", "Framework"):
        await service.create_category({"title_en": title})
    recorder = Recorder()

    unsubscribe = await service.subscribe_categories(recorder)

    assert recorder.snapshots and recorder.titles() == ["Law", "Framework"]
    unsubscribe()


async def test_snapshot_follows_committed_moves(service: CategoryService):
    law = await service.create_category({"title_en": "Law"})
    await service.create_category({"title_en": "Framework"})
    crimes = await service.create_category({"title_en": "Crimes"})
    recorder = Recorder()
    unsubscribe = await service.subscribe_categories(recorder)

    await service.move_category_up(crimes.id)

    # One committed swap, one new snapshot, never a half-swapped list
    assert len(recorder.snapshots) == 2
    assert recorder.titles() == ["Law", "Crimes", "Framework"]
    assert [item["order"] for item in recorder.snapshots[-1]] == [1, 2, 3]
    assert recorder.snapshots[-1][0]["id"] == law.id
    unsubscribe()


async def test_noop_move_publishes_nothing(service: CategoryService):
    law = await service.create_category({"title_en": "Law"})
    recorder = Recorder()
    unsubscribe = await service.subscribe_categories(recorder)

    await service.move_category_up(law.id)

    assert len(recorder.snapshots) == 1
    unsubscribe()


async def test_subcategory_feed_ignores_other_categories(service: CategoryService):
    x = await service.create_category({"title_en": "X"})
    y = await service.create_category({"title_en": "Y"})
    await service.create_subcategory(x.id, subcategory_data("X1"))
    recorder = Recorder()
    unsubscribe = await service.subscribe_subcategories(x.id, recorder)

    await service.create_subcategory(y.id, subcategory_data("Y1"))
    assert len(recorder.snapshots) == 1

    await service.create_subcategory(x.id, subcategory_data("X2"))
    assert recorder.titles() == ["X1", "X2"]
    unsubscribe()


async def test_async_callbacks_are_awaited(service: CategoryService):
    received = []

    async def callback(items):
        received.append([item["title_en"] for item in items])

    unsubscribe = await service.subscribe_categories(callback)
    await service.create_category({"title_en": "Law"})

    assert received == [[], ["Law"]]
    unsubscribe()


async def test_unsubscribe_twice_is_safe_and_stops_delivery(service: CategoryService, store):
    recorder = Recorder()
    unsubscribe = await service.subscribe_categories(recorder)

    unsubscribe()
    unsubscribe()
    await service.create_category({"title_en": "Law"})

    assert len(recorder.snapshots) == 1
    assert store.changes.listener_count("categories") == 0


async def test_subscribe_rejects_scope_of_other_collection(service: CategoryService, store):
    with pytest.raises(ValidationError):
        await service.categories.subscribe(SiblingScope("subcategories", 1), Recorder())
    assert store.changes.listener_count("categories") == 0


async def test_failing_initial_delivery_releases_listener(service: CategoryService, store):
    def broken(items):
        raise RuntimeError("render failed")

    with pytest.raises(RuntimeError):
        await service.subscribe_categories(broken)
    assert store.changes.listener_count("categories") == 0
