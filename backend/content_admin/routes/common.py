"""Request models and helpers shared by the content routers"""
import asyncio
import logging
import secrets
from typing import Any, Callable, List, Optional

from fastapi import Header, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from content_admin.config import settings
from content_admin.exceptions import (
    CascadeDeleteError,
    ContentError,
    EntityNotFoundError,
    StorageError,
    TransactionConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class MoveRequest(BaseModel):
    """Optional client view of the list; the server re-reads the real order"""
    current_order: Optional[int] = Field(default=None, ge=0)
    max_order: Optional[int] = Field(default=None, ge=0)


class MoveResponse(BaseModel):
    moved: bool


class ReorderRequest(BaseModel):
    """Every sibling id, in the desired order"""
    ids: List[int] = Field(..., min_length=1)


async def require_admin(x_admin_key: Optional[str] = Header(default=None)):
    """Mutations need X-Admin-Key when an admin key is configured"""
    if not settings.admin_api_key:
        return
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.admin_api_key):
        raise HTTPException(status_code=403, detail="Only administrators can modify content")


def http_error(e: ContentError) -> HTTPException:
    """Translate a content error into the matching HTTP error"""
    if isinstance(e, EntityNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, TransactionConflictError):
        return HTTPException(status_code=409, detail="The list was changed by someone else, please retry")
    if isinstance(e, CascadeDeleteError):
        return HTTPException(status_code=500, detail=f"{e}. Nothing was deleted.")
    if isinstance(e, StorageError):
        return HTTPException(status_code=502, detail="File storage is unavailable")
    return HTTPException(status_code=500, detail="Internal server error")


def keep_latest(queue: asyncio.Queue) -> Callable[[Any], None]:
    """Queue callback that replaces an unsent snapshot with the newer one"""
    def push(item):
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(item)
    return push


async def stream_snapshots(
    websocket: WebSocket,
    subscribe: Callable,
    collection: str,
    serialize: Callable[[dict], Any],
    parent_id: Optional[int] = None,
):
    """
    Push snapshots of one scope to a websocket until the client leaves
    or a send fails.

    Only the newest unsent snapshot is kept, so a slow socket never holds
    up the writer that triggered it and never replays outdated lists.
    """
    await websocket.accept()
    snapshots: asyncio.Queue = asyncio.Queue(maxsize=1)
    unsubscribe = await subscribe(keep_latest(snapshots))

    async def send_snapshots():
        while True:
            items = await snapshots.get()
            await websocket.send_json({
                "collection": collection,
                "scope": parent_id,
                "items": [serialize(item) for item in items],
            })

    async def receive_until_disconnect():
        try:
            while True:
                # Clients only keep the socket alive; anything they send is ignored
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug(f"Websocket for {collection} closed")

    sender = asyncio.create_task(send_snapshots())
    receiver = asyncio.create_task(receive_until_disconnect())
    try:
        await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        unsubscribe()
        sender.cancel()
        receiver.cancel()
        for result in await asyncio.gather(sender, receiver, return_exceptions=True):
            if isinstance(result, Exception):
                logger.error(f"Websocket feed for {collection} failed: {result}")
