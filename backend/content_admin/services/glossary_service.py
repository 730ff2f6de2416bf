"""Glossary terms and {term} cross-links"""
import logging
import re
from typing import Callable, Dict, List, Optional, Any, Tuple

from sqlalchemy import func, or_

from content_admin.models.glossary import GlossaryTerm
from content_admin.services.document_store import DocumentStore
from content_admin.services.ordering import NeighborPolicy, OrderedRepository

logger = logging.getLogger(__name__)

# {term} references inside bilingual content
LINK_PATTERN = re.compile(r"\{([^}]+)\}")


class GlossaryService:
    """Glossary CRUD, ordering and link lookup"""

    def __init__(self, store: DocumentStore):
        self.store = store
        # Terms step over gaps when moved, as the console always allowed
        self.terms = OrderedRepository(
            store, GlossaryTerm, name_field="term", neighbor_policy=NeighborPolicy.NEAREST
        )

    async def get_terms(self) -> List[dict]:
        return await self.terms.snapshot(self.terms.scope())

    async def get_term(self, term_id: int) -> GlossaryTerm:
        return await self.terms.get(term_id)

    async def add_term(self, data: Dict[str, Any]) -> GlossaryTerm:
        return await self.terms.create(data)

    async def update_term(self, term_id: int, data: Dict[str, Any]) -> GlossaryTerm:
        return await self.terms.update(term_id, data)

    async def delete_term(self, term_id: int) -> GlossaryTerm:
        return await self.terms.delete(term_id)

    async def move_term_up(self, term_id: int, current_order: Optional[int] = None) -> bool:
        return await self.terms.move_up(term_id, current_order=current_order)

    async def move_term_down(
        self, term_id: int, current_order: Optional[int] = None, max_order: Optional[int] = None
    ) -> bool:
        return await self.terms.move_down(term_id, current_order=current_order, max_order=max_order)

    async def reorder_terms(self, ordered_ids: List[int]) -> List[GlossaryTerm]:
        return await self.terms.reorder(self.terms.scope(), ordered_ids)

    async def subscribe_terms(self, callback) -> Callable[[], None]:
        return await self.terms.subscribe(self.terms.scope(), callback)

    async def find_term_by_name(self, name: str) -> Optional[GlossaryTerm]:
        """Case-insensitive match on the English or Arabic term, lowest order wins"""
        needle = name.strip().lower()
        if not needle:
            return None
        matches = await self.store.query_by(
            GlossaryTerm,
            filters=[or_(func.lower(GlossaryTerm.term) == needle, func.lower(GlossaryTerm.term_ar) == needle)],
            order_by=[GlossaryTerm.order.asc()],
            limit=1,
        )
        return matches[0] if matches else None

    async def resolve_links(self, text: str) -> Tuple[List[GlossaryTerm], List[str]]:
        """
        Resolve every {term} reference in text.
        Returns (linked terms in first-mention order, names with no match).
        """
        linked: List[GlossaryTerm] = []
        unresolved: List[str] = []
        seen = set()

        for match in LINK_PATTERN.finditer(text or ""):
            name = match.group(1).strip()
            key = name.lower()
            if not name or key in seen:
                continue
            seen.add(key)

            term = await self.find_term_by_name(name)
            if term is None:
                unresolved.append(name)
            elif all(existing.id != term.id for existing in linked):
                linked.append(term)

        if unresolved:
            logger.debug(f"Unresolved glossary links: {unresolved}")
        return linked, unresolved
