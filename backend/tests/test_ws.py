"""
WebSocket Feed Tests
"""

import asyncio
import logging

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from content_admin.main import app
from content_admin.routes.common import keep_latest, stream_snapshots


def test_categories_feed_pushes_snapshot_after_each_write():
    with TestClient(app) as client:
        law = client.post("/api/categories/", json={"title_en": "Law"}).json()

        with client.websocket_connect("/ws/categories") as websocket:
            initial = websocket.receive_json()
            assert initial["collection"] == "categories"
            assert initial["scope"] is None
            assert [item["title_en"] for item in initial["items"]] == ["Law"]

            crimes = client.post("/api/categories/", json={"title_en": "Crimes"}).json()
            created = websocket.receive_json()
            assert [item["title_en"] for item in created["items"]] == ["Law", "Crimes"]

            client.post(f"/api/categories/{crimes['id']}/move-up")
            moved = websocket.receive_json()
            assert [(item["id"], item["order"]) for item in moved["items"]] == [(crimes["id"], 1), (law["id"], 2)]


def test_subcategory_feed_is_scoped_to_its_category():
    subcategory = {"title_en": "S", "title_ar": "S", "content_en": "S", "content_ar": "S"}
    with TestClient(app) as client:
        x = client.post("/api/categories/", json={"title_en": "X"}).json()
        y = client.post("/api/categories/", json={"title_en": "Y"}).json()

        with client.websocket_connect(f"/ws/categories/{x['id']}/subcategories") as websocket:
            assert websocket.receive_json()["items"] == []

            client.post(f"/api/categories/{y['id']}/subcategories", json={**subcategory, "title_en": "Y1"})
            client.post(f"/api/categories/{x['id']}/subcategories", json={**subcategory, "title_en": "X1"})

            # The Y write produced no message, so the next one is already the X snapshot
            update = websocket.receive_json()
            assert update["scope"] == x["id"]
            assert [item["title_en"] for item in update["items"]] == ["X1"]


def test_unknown_feed_is_refused():
    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/bookmarks") as websocket:
                websocket.receive_json()

        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/categories/404/subcategories") as websocket:
                websocket.receive_json()


class BrokenSocket:
    """Accepts, then fails every send while the client stays silent"""

    def __init__(self):
        self.client_gone = asyncio.Event()

    async def accept(self):
        pass

    async def send_json(self, data):
        raise RuntimeError("socket closed mid-send")

    async def receive_text(self):
        await self.client_gone.wait()
        raise WebSocketDisconnect()


def test_feed_keeps_only_the_newest_unsent_snapshot():
    snapshots = asyncio.Queue(maxsize=1)
    push = keep_latest(snapshots)

    push(["Law"])
    push(["Law", "Crimes"])

    assert snapshots.get_nowait() == ["Law", "Crimes"]
    assert snapshots.empty()


async def test_failed_send_ends_the_feed_and_is_logged(caplog):
    unsubscribed = []

    async def subscribe(callback):
        callback([{"id": 1}])
        return lambda: unsubscribed.append(True)

    with caplog.at_level(logging.ERROR, logger="content_admin.routes.common"):
        await asyncio.wait_for(stream_snapshots(BrokenSocket(), subscribe, "categories", dict), timeout=5)

    assert unsubscribed == [True]
    assert "socket closed mid-send" in caplog.text
