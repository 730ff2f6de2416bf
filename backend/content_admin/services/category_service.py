"""Service for the category -> subcategory -> sub-subcategory taxonomy"""
import logging
from typing import Callable, Dict, List, Optional, Any

from content_admin.exceptions import CascadeDeleteError, ContentError, EntityNotFoundError, ValidationError
from content_admin.models.category import Category, Subcategory
from content_admin.services.cache import cache_service
from content_admin.services.document_store import DocumentStore, Transaction, WriteOp
from content_admin.services.ordering import NeighborPolicy, OrderedRepository, SiblingScope

logger = logging.getLogger(__name__)


class SubcategoryRepository(OrderedRepository):
    """Subcategories are ordered per category; nested ones share that scope"""

    def __init__(self, store: DocumentStore):
        super().__init__(
            store,
            Subcategory,
            name_field="title_en",
            parent_field="category_id",
            neighbor_policy=NeighborPolicy.ADJACENT,
        )

    async def before_create(self, txn: Transaction, scope: SiblingScope, values: Dict[str, Any]):
        if await txn.get(Category, scope.parent_id) is None:
            raise EntityNotFoundError(Category.__tablename__, scope.parent_id)

        parent_subcategory_id = values.get("parent_subcategory_id")
        if parent_subcategory_id is None:
            return

        parent = await txn.get(Subcategory, parent_subcategory_id)
        if parent is None:
            raise EntityNotFoundError(Subcategory.__tablename__, parent_subcategory_id)
        if parent.category_id != scope.parent_id:
            raise ValidationError(
                f"Subcategory {parent_subcategory_id} belongs to category {parent.category_id}, not {scope.parent_id}"
            )
        if parent.parent_subcategory_id is not None:
            raise ValidationError("Sub-subcategories cannot be nested further")


class CategoryService:
    """Service for category and subcategory operations"""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.categories = OrderedRepository(
            store, Category, name_field="title_en", neighbor_policy=NeighborPolicy.ADJACENT
        )
        self.subcategories = SubcategoryRepository(store)

    # Categories

    async def get_all_categories(self) -> List[dict]:
        """Get all categories ordered by order, then title"""
        return await self.categories.snapshot(self.categories.scope())

    async def get_category(self, category_id: int) -> Category:
        return await self.categories.get(category_id)

    async def create_category(self, data: Dict[str, Any]) -> Category:
        return await self.categories.create(data)

    async def update_category(self, category_id: int, data: Dict[str, Any]) -> Category:
        return await self.categories.update(category_id, data)

    async def move_category_up(self, category_id: int, current_order: Optional[int] = None) -> bool:
        return await self.categories.move_up(category_id, current_order=current_order)

    async def move_category_down(
        self, category_id: int, current_order: Optional[int] = None, max_order: Optional[int] = None
    ) -> bool:
        return await self.categories.move_down(category_id, current_order=current_order, max_order=max_order)

    async def reorder_categories(self, ordered_ids: List[int]) -> List[Category]:
        return await self.categories.reorder(self.categories.scope(), ordered_ids)

    async def subscribe_categories(self, callback) -> Callable[[], None]:
        return await self.categories.subscribe(self.categories.scope(), callback)

    async def delete_category(self, category_id: int) -> int:
        """
        Delete a category together with every subcategory that references it,
        in one atomic batch. Returns the number of subcategories removed.
        """
        # Raises EntityNotFoundError before anything is written
        await self.categories.get(category_id)

        try:
            children = await self.store.query_by(
                Subcategory, filters=[Subcategory.category_id == category_id]
            )
        except Exception as e:
            logger.error(f"Error loading subcategories of category {category_id}, nothing deleted: {e}")
            raise

        # Nested rows first so no statement leaves a dangling parent reference
        children.sort(key=lambda sub: sub.parent_subcategory_id is None)
        ops = [WriteOp.delete(Subcategory, sub.id) for sub in children]
        ops.append(WriteOp.delete(Category, category_id))

        try:
            await self.store.batch_write(ops)
        except ContentError:
            raise
        except Exception as e:
            logger.error(f"Cascade delete of category {category_id} failed: {e}")
            raise CascadeDeleteError(Category.__tablename__, category_id, e) from e

        await cache_service.invalidate_scope(Category.__tablename__)
        await cache_service.invalidate_scope(Subcategory.__tablename__, category_id)
        logger.info(f"Deleted category {category_id} and {len(children)} subcategories")
        return len(children)

    # Subcategories

    async def get_subcategories(self, category_id: int) -> List[dict]:
        """Subcategories of one category, sorted by order then title"""
        await self.categories.get(category_id)
        return await self.subcategories.snapshot(self.subcategories.scope(category_id))

    async def get_subcategory(self, subcategory_id: int) -> Subcategory:
        return await self.subcategories.get(subcategory_id)

    async def create_subcategory(self, category_id: int, data: Dict[str, Any]) -> Subcategory:
        return await self.subcategories.create(data, parent_id=category_id)

    async def update_subcategory(self, subcategory_id: int, data: Dict[str, Any]) -> Subcategory:
        # Re-parenting is not supported
        data = {key: value for key, value in data.items() if key != "parent_subcategory_id"}
        return await self.subcategories.update(subcategory_id, data)

    async def move_subcategory_up(
        self, subcategory_id: int, category_id: Optional[int] = None, current_order: Optional[int] = None
    ) -> bool:
        return await self.subcategories.move_up(subcategory_id, parent_id=category_id, current_order=current_order)

    async def move_subcategory_down(
        self,
        subcategory_id: int,
        category_id: Optional[int] = None,
        current_order: Optional[int] = None,
        max_order: Optional[int] = None,
    ) -> bool:
        return await self.subcategories.move_down(
            subcategory_id, parent_id=category_id, current_order=current_order, max_order=max_order
        )

    async def reorder_subcategories(self, category_id: int, ordered_ids: List[int]) -> List[Subcategory]:
        return await self.subcategories.reorder(self.subcategories.scope(category_id), ordered_ids)

    async def subscribe_subcategories(self, category_id: int, callback) -> Callable[[], None]:
        return await self.subcategories.subscribe(self.subcategories.scope(category_id), callback)

    async def delete_subcategory(self, subcategory_id: int) -> int:
        """Delete a subcategory and its nested sub-subcategories atomically"""
        subcategory = await self.subcategories.get(subcategory_id)
        nested = await self.store.query_by(
            Subcategory, filters=[Subcategory.parent_subcategory_id == subcategory_id]
        )

        ops = [WriteOp.delete(Subcategory, sub.id) for sub in nested]
        ops.append(WriteOp.delete(Subcategory, subcategory_id))
        try:
            await self.store.batch_write(ops)
        except ContentError:
            raise
        except Exception as e:
            logger.error(f"Cascade delete of subcategory {subcategory_id} failed: {e}")
            raise CascadeDeleteError(Subcategory.__tablename__, subcategory_id, e) from e

        await cache_service.invalidate_scope(Subcategory.__tablename__, subcategory.category_id)
        logger.info(f"Deleted subcategory {subcategory_id} and {len(nested)} nested subcategories")
        return len(nested)
