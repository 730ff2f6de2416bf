"""API routes for the bilingual glossary"""
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional
import logging

from content_admin.exceptions import ContentError
from content_admin.models.glossary import (
    GlossaryTermCreate,
    GlossaryTermUpdate,
    GlossaryTermResponse,
    GlossaryList,
    LinkResolutionRequest,
    LinkResolution,
)
from content_admin.routes.common import MoveRequest, MoveResponse, ReorderRequest, http_error, require_admin
from content_admin.services.document_store import document_store
from content_admin.services.glossary_service import GlossaryService

router = APIRouter(prefix="/api/glossary", tags=["glossary"])
logger = logging.getLogger(__name__)

glossary_service = GlossaryService(document_store)


@router.get("/", response_model=GlossaryList)
async def get_terms():
    try:
        terms = await glossary_service.get_terms()
        return GlossaryList(terms=terms, total=len(terms))
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error getting glossary terms: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/lookup", response_model=GlossaryTermResponse)
async def lookup_term(name: str = Query(..., min_length=1)):
    """
    Find a term by its English or Arabic name, ignoring case.
    """
    try:
        term = await glossary_service.find_term_by_name(name)
        if term is None:
            raise HTTPException(status_code=404, detail=f"No glossary term named '{name}'")
        return term
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error looking up glossary term '{name}': {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/links", response_model=LinkResolution)
async def resolve_links(request: LinkResolutionRequest):
    """
    Resolve the {term} references in a piece of content.

    - **linked**: Matching glossary terms, in order of first mention
    - **unresolved**: Referenced names with no matching term
    """
    try:
        linked, unresolved = await glossary_service.resolve_links(request.text)
        return LinkResolution(linked=[term.to_dict() for term in linked], unresolved=unresolved)
    except Exception as e:
        logger.error(f"Error resolving glossary links: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/reorder", response_model=GlossaryList, dependencies=[Depends(require_admin)])
async def reorder_terms(reorder_data: ReorderRequest):
    try:
        terms = await glossary_service.reorder_terms(reorder_data.ids)
        return GlossaryList(terms=[term.to_dict() for term in terms], total=len(terms))
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error reordering glossary terms: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{term_id}", response_model=GlossaryTermResponse)
async def get_term(term_id: int):
    try:
        return await glossary_service.get_term(term_id)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error getting glossary term {term_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/", response_model=GlossaryTermResponse, status_code=201, dependencies=[Depends(require_admin)])
async def add_term(term_data: GlossaryTermCreate):
    """
    Add a term at the end of the glossary.
    """
    try:
        return await glossary_service.add_term(term_data.model_dump())
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error adding glossary term: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.put("/{term_id}", response_model=GlossaryTermResponse, dependencies=[Depends(require_admin)])
async def update_term(term_id: int, term_data: GlossaryTermUpdate):
    try:
        return await glossary_service.update_term(term_id, term_data.model_dump(exclude_unset=True))
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error updating glossary term {term_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.delete("/{term_id}", status_code=204, dependencies=[Depends(require_admin)])
async def delete_term(term_id: int):
    try:
        await glossary_service.delete_term(term_id)
        return None
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error deleting glossary term {term_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{term_id}/move-up", response_model=MoveResponse, dependencies=[Depends(require_admin)])
async def move_term_up(term_id: int, move: Optional[MoveRequest] = None):
    """
    Swap a term with the closest term above it, stepping over gaps.
    """
    move = move or MoveRequest()
    try:
        moved = await glossary_service.move_term_up(term_id, current_order=move.current_order)
        return MoveResponse(moved=moved)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error moving glossary term {term_id} up: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/{term_id}/move-down", response_model=MoveResponse, dependencies=[Depends(require_admin)])
async def move_term_down(term_id: int, move: Optional[MoveRequest] = None):
    """
    Swap a term with the closest term below it, stepping over gaps.
    """
    move = move or MoveRequest()
    try:
        moved = await glossary_service.move_term_down(
            term_id, current_order=move.current_order, max_order=move.max_order
        )
        return MoveResponse(moved=moved)
    except ContentError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error moving glossary term {term_id} down: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
