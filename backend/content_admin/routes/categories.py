"""API routes for category management"""
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional
import logging

from content_admin.exceptions import ContentError
from content_admin.models.category import CategoryCreate, CategoryUpdate, CategoryResponse, CategoryList
from content_admin.routes.common import MoveRequest, MoveResponse, ReorderRequest, http_error, require_admin
from content_admin.services.category_service import CategoryService
from content_admin.services.document_store import document_store

router = APIRouter(prefix="/api/categories", tags=["categories"])
logger = logging.getLogger(__name__)

# Initialize category service (shared with the subcategory and websocket routes)
category_service = CategoryService(document_store)


@router.get("/", response_model=CategoryList)
async def get_categories():
    """
    Get all categories, sorted by order then English title.
    """
    try:
        categories = await category_service.get_all_categories()
        return CategoryList(categories=categories, total=len(categories))
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error getting categories: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/reorder", response_model=CategoryList, dependencies=[Depends(require_admin)])
async def reorder_categories(reorder_data: ReorderRequest):
    """
    Renumber all categories 1..n in the given order. Requires the admin key when configured.

    - **ids**: Every category ID exactly once, first to last
    """
    try:
        categories = await category_service.reorder_categories(reorder_data.ids)
        return CategoryList(categories=[category.to_dict() for category in categories], total=len(categories))
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error reordering categories: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int):
    """
    Get a specific category by ID.

    - **category_id**: The category ID
    """
    try:
        return await category_service.get_category(category_id)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error getting category {category_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/", response_model=CategoryResponse, status_code=201, dependencies=[Depends(require_admin)])
async def create_category(category_data: CategoryCreate):
    """
    Create a new category at the end of the list.

    - **title_en**: English title (required)
    - **title_ar**: Arabic title (optional)
    - **color_hex**: Display colour as #RRGGBB (optional)
    """
    try:
        return await category_service.create_category(category_data.model_dump())
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error creating category: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{category_id}", response_model=CategoryResponse, dependencies=[Depends(require_admin)])
async def update_category(category_id: int, category_data: CategoryUpdate):
    """
    Update an existing category. Only the fields sent are changed; the order is not editable here.

    - **category_id**: The category ID
    """
    try:
        return await category_service.update_category(category_id, category_data.model_dump(exclude_unset=True))
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error updating category {category_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{category_id}", status_code=204, dependencies=[Depends(require_admin)])
async def delete_category(category_id: int):
    """
    Delete a category and all of its subcategories in one atomic batch.

    - **category_id**: The category ID
    """
    try:
        await category_service.delete_category(category_id)
        return None
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error deleting category {category_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{category_id}/move-up", response_model=MoveResponse, dependencies=[Depends(require_admin)])
async def move_category_up(category_id: int, move: Optional[MoveRequest] = None):
    """
    Swap a category with the one directly above it. `moved` is false at the top.
    """
    move = move or MoveRequest()
    try:
        moved = await category_service.move_category_up(category_id, current_order=move.current_order)
        return MoveResponse(moved=moved)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error moving category {category_id} up: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{category_id}/move-down", response_model=MoveResponse, dependencies=[Depends(require_admin)])
async def move_category_down(category_id: int, move: Optional[MoveRequest] = None):
    """
    Swap a category with the one directly below it. `moved` is false at the bottom.
    """
    move = move or MoveRequest()
    try:
        moved = await category_service.move_category_down(
            category_id, current_order=move.current_order, max_order=move.max_order
        )
        return MoveResponse(moved=moved)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error moving category {category_id} down: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
