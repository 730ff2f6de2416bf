"""
API routes for diagrams and templates

Both families share one router shape: multipart create/update carrying the
bilingual fields plus an optional file, delete that also removes the stored
file, moves and batch reorder.
"""
from fastapi import APIRouter, HTTPException, Depends, File, Form, UploadFile
from typing import Optional, Type
import logging

from pydantic import BaseModel

from content_admin.exceptions import ContentError
from content_admin.models.media import DiagramResponse, DiagramList, TemplateResponse, TemplateList
from content_admin.routes.common import MoveRequest, MoveResponse, ReorderRequest, http_error, require_admin
from content_admin.services.document_store import document_store
from content_admin.services.media_service import (
    AssetUpload,
    MediaService,
    diagram_service_for,
    template_service_for,
)
from content_admin.services.storage import storage_service

logger = logging.getLogger(__name__)

diagram_service = diagram_service_for(document_store, storage_service)
template_service = template_service_for(document_store, storage_service)


async def _read_upload(upload: Optional[UploadFile]) -> Optional[AssetUpload]:
    # Browsers send an empty part when no file was picked
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return AssetUpload(filename=upload.filename, content=content, content_type=upload.content_type)


def create_media_router(
    service: MediaService,
    prefix: str,
    item_model: Type[BaseModel],
    list_model: Type[BaseModel],
    list_field: str,
    file_field: str,
) -> APIRouter:
    """Build the CRUD + ordering router of one media family"""
    router = APIRouter(prefix=prefix, tags=[list_field])
    label = service.collection

    def as_list(items) -> BaseModel:
        return list_model(**{list_field: items, "total": len(items)})

    @router.get("/", response_model=list_model)
    async def get_items():
        try:
            return as_list(await service.get_items())
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error getting {label}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.post("/reorder", response_model=list_model, dependencies=[Depends(require_admin)])
    async def reorder_items(reorder_data: ReorderRequest):
        try:
            items = await service.reorder(reorder_data.ids)
            return as_list([item.to_dict() for item in items])
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error reordering {label}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.get("/{item_id}", response_model=item_model)
    async def get_item(item_id: int):
        try:
            return await service.get_item(item_id)
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error getting {label} {item_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.post("/", response_model=item_model, status_code=201, dependencies=[Depends(require_admin)])
    async def create_item(
        title: str = Form(..., min_length=1, max_length=255),
        title_ar: str = Form("", max_length=255),
        description: str = Form(""),
        description_ar: str = Form(""),
        category: str = Form("", max_length=255),
        upload: Optional[UploadFile] = File(None, alias=file_field),
    ):
        """
        Create an entry at the end of the list, storing the attached file under its id.
        """
        try:
            data = {
                "title": title,
                "title_ar": title_ar,
                "description": description,
                "description_ar": description_ar,
                "category": category,
            }
            return await service.create_item(data, await _read_upload(upload))
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error creating {label}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.put("/{item_id}", response_model=item_model, dependencies=[Depends(require_admin)])
    async def update_item(
        item_id: int,
        title: Optional[str] = Form(None, min_length=1, max_length=255),
        title_ar: Optional[str] = Form(None, max_length=255),
        description: Optional[str] = Form(None),
        description_ar: Optional[str] = Form(None),
        category: Optional[str] = Form(None, max_length=255),
        upload: Optional[UploadFile] = File(None, alias=file_field),
    ):
        """
        Update the fields that were sent; a new file replaces the stored one.
        """
        try:
            fields = {
                "title": title,
                "title_ar": title_ar,
                "description": description,
                "description_ar": description_ar,
                "category": category,
            }
            data = {key: value for key, value in fields.items() if value is not None}
            return await service.update_item(item_id, data, await _read_upload(upload))
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error updating {label} {item_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.delete("/{item_id}", status_code=204, dependencies=[Depends(require_admin)])
    async def delete_item(item_id: int):
        """
        Delete an entry, then its stored file. A file that is already gone is ignored.
        """
        try:
            await service.delete_item(item_id)
            return None
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error deleting {label} {item_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.post("/{item_id}/move-up", response_model=MoveResponse, dependencies=[Depends(require_admin)])
    async def move_item_up(item_id: int, move: Optional[MoveRequest] = None):
        move = move or MoveRequest()
        try:
            return MoveResponse(moved=await service.move_up(item_id, current_order=move.current_order))
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error moving {label} {item_id} up: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @router.post("/{item_id}/move-down", response_model=MoveResponse, dependencies=[Depends(require_admin)])
    async def move_item_down(item_id: int, move: Optional[MoveRequest] = None):
        move = move or MoveRequest()
        try:
            moved = await service.move_down(item_id, current_order=move.current_order, max_order=move.max_order)
            return MoveResponse(moved=moved)
        except ContentError as e:
            raise http_error(e)
        except Exception as e:
            logger.error(f"Error moving {label} {item_id} down: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    return router


diagrams_router = create_media_router(
    diagram_service, "/api/diagrams", DiagramResponse, DiagramList, "diagrams", "image"
)
templates_router = create_media_router(
    template_service, "/api/templates", TemplateResponse, TemplateList, "templates", "pdf"
)
