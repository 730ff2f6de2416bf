"""API routes for subcategories, ordered within their category"""
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional
import logging

from content_admin.exceptions import ContentError
from content_admin.models.category import (
    SubcategoryCreate,
    SubcategoryUpdate,
    SubcategoryResponse,
    SubcategoryList,
)
from content_admin.routes.categories import category_service
from content_admin.routes.common import MoveRequest, MoveResponse, ReorderRequest, http_error, require_admin

router = APIRouter(prefix="/api", tags=["subcategories"])
logger = logging.getLogger(__name__)


class SubcategoryMoveRequest(MoveRequest):
    """Category the client believes the subcategory is in (checked when sent)"""
    category_id: Optional[int] = None


@router.get("/categories/{category_id}/subcategories", response_model=SubcategoryList)
async def get_subcategories(category_id: int):
    """
    Get the subcategories of one category, nested ones included, sorted by order then title.
    """
    try:
        subcategories = await category_service.get_subcategories(category_id)
        return SubcategoryList(category_id=category_id, subcategories=subcategories, total=len(subcategories))
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error getting subcategories of category {category_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/categories/{category_id}/subcategories",
    response_model=SubcategoryResponse,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
async def create_subcategory(category_id: int, subcategory_data: SubcategoryCreate):
    """
    Create a subcategory at the end of its category.

    - **parent_subcategory_id**: Nest under a top-level subcategory of the same category (optional)
    """
    try:
        return await category_service.create_subcategory(category_id, subcategory_data.model_dump())
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error creating subcategory in category {category_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/categories/{category_id}/subcategories/reorder",
    response_model=SubcategoryList,
    dependencies=[Depends(require_admin)],
)
async def reorder_subcategories(category_id: int, reorder_data: ReorderRequest):
    """
    Renumber the subcategories of one category 1..n in the given order.
    """
    try:
        subcategories = await category_service.reorder_subcategories(category_id, reorder_data.ids)
        return SubcategoryList(
            category_id=category_id,
            subcategories=[sub.to_dict() for sub in subcategories],
            total=len(subcategories),
        )
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error reordering subcategories of category {category_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/subcategories/{subcategory_id}", response_model=SubcategoryResponse)
async def get_subcategory(subcategory_id: int):
    try:
        return await category_service.get_subcategory(subcategory_id)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error getting subcategory {subcategory_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put(
    "/subcategories/{subcategory_id}",
    response_model=SubcategoryResponse,
    dependencies=[Depends(require_admin)],
)
async def update_subcategory(subcategory_id: int, subcategory_data: SubcategoryUpdate):
    """
    Update the bilingual fields of a subcategory. Its category and order stay as they are.
    """
    try:
        return await category_service.update_subcategory(
            subcategory_id, subcategory_data.model_dump(exclude_unset=True)
        )
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error updating subcategory {subcategory_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/subcategories/{subcategory_id}", status_code=204, dependencies=[Depends(require_admin)])
async def delete_subcategory(subcategory_id: int):
    """
    Delete a subcategory together with the subcategories nested under it.
    """
    try:
        await category_service.delete_subcategory(subcategory_id)
        return None
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error deleting subcategory {subcategory_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/subcategories/{subcategory_id}/move-up",
    response_model=MoveResponse,
    dependencies=[Depends(require_admin)],
)
async def move_subcategory_up(subcategory_id: int, move: Optional[SubcategoryMoveRequest] = None):
    move = move or SubcategoryMoveRequest()
    try:
        moved = await category_service.move_subcategory_up(
            subcategory_id, category_id=move.category_id, current_order=move.current_order
        )
        return MoveResponse(moved=moved)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error moving subcategory {subcategory_id} up: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/subcategories/{subcategory_id}/move-down",
    response_model=MoveResponse,
    dependencies=[Depends(require_admin)],
)
async def move_subcategory_down(subcategory_id: int, move: Optional[SubcategoryMoveRequest] = None):
    move = move or SubcategoryMoveRequest()
    try:
        moved = await category_service.move_subcategory_down(
            subcategory_id,
            category_id=move.category_id,
            current_order=move.current_order,
            max_order=move.max_order,
        )
        return MoveResponse(moved=moved)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error moving subcategory {subcategory_id} down: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
