"""WebSocket routes streaming live sorted lists"""
from fastapi import APIRouter, WebSocket
import logging

from content_admin.exceptions import ContentError
from content_admin.models.category import CategoryResponse, SubcategoryResponse
from content_admin.models.glossary import GlossaryTermResponse
from content_admin.models.media import DiagramResponse, TemplateResponse
from content_admin.routes.categories import category_service
from content_admin.routes.common import stream_snapshots
from content_admin.routes.glossary import glossary_service
from content_admin.routes.media import diagram_service, template_service

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)

# Policy violation close code, sent for unknown lists
WS_UNKNOWN_LIST = 1008


def _serializer(schema):
    return lambda item: schema(**item).model_dump(mode="json")


# collection name -> (subscribe, serializer) for the globally ordered lists
LIVE_LISTS = {
    "categories": (category_service.subscribe_categories, _serializer(CategoryResponse)),
    "glossary": (glossary_service.subscribe_terms, _serializer(GlossaryTermResponse)),
    "diagrams": (diagram_service.subscribe, _serializer(DiagramResponse)),
    "templates": (template_service.subscribe, _serializer(TemplateResponse)),
}


@router.websocket("/ws/categories/{category_id}/subcategories")
async def subcategories_feed(websocket: WebSocket, category_id: int):
    """
    Live subcategory list of one category.
    """
    try:
        await category_service.get_category(category_id)
    except ContentError as e:
        logger.info(f"Refusing subcategory feed: {e}")
        await websocket.close(code=WS_UNKNOWN_LIST)
        return

    async def subscribe(callback):
        return await category_service.subscribe_subcategories(category_id, callback)

    await stream_snapshots(
        websocket, subscribe, "subcategories", _serializer(SubcategoryResponse), parent_id=category_id
    )


@router.websocket("/ws/{collection}")
async def collection_feed(websocket: WebSocket, collection: str):
    """
    Live sorted list of categories, glossary, diagrams or templates.
    """
    if collection not in LIVE_LISTS:
        logger.info(f"Refusing feed for unknown list '{collection}'")
        await websocket.close(code=WS_UNKNOWN_LIST)
        return

    subscribe, serialize = LIVE_LISTS[collection]
    await stream_snapshots(websocket, subscribe, collection, serialize)
