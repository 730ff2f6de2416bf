"""
Diagrams and templates: ordered entities that own one stored file each.

The metadata row is the source of truth. Stored files are cleaned up on a
best-effort basis: a missing or undeletable file is logged, never allowed to
fail an otherwise committed delete.
"""
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from content_admin.config import settings
from content_admin.exceptions import AssetNotFoundError, StorageError, ValidationError
from content_admin.models.media import Diagram, Template
from content_admin.services.document_store import DocumentStore
from content_admin.services.ordering import NeighborPolicy, OrderedRepository

logger = logging.getLogger(__name__)


@dataclass
class AssetUpload:
    """A file received from the client"""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lstrip(".").lower()


@dataclass(frozen=True)
class AssetSpec:
    """Where and how one family stores its file"""
    folder: str
    field_prefix: str
    allowed_types: Tuple[str, ...]
    max_size: int
    required: bool = False
    name_prefix: str = ""
    fixed_extension: Optional[str] = None

    def file_name(self, entity_id: int, upload: AssetUpload) -> str:
        timestamp = int(time.time() * 1000)
        extension = self.fixed_extension or upload.extension or "bin"
        return f"{self.name_prefix}{entity_id}_{timestamp}.{extension}"

    def path(self, file_name: str) -> str:
        return f"{self.folder}/{file_name}"

    def field(self, name: str) -> str:
        return f"{self.field_prefix}_{name}"


DIAGRAM_ASSET = AssetSpec(
    folder="diagrams",
    field_prefix="image",
    allowed_types=("image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml"),
    max_size=settings.max_image_size,
)

TEMPLATE_ASSET = AssetSpec(
    folder="templates",
    field_prefix="pdf",
    allowed_types=("application/pdf",),
    max_size=settings.max_pdf_size,
    required=True,
    name_prefix="template_",
    fixed_extension="pdf",
)


class MediaService:
    """Ordered entity family with an attached stored file"""

    def __init__(self, store: DocumentStore, model: Type, asset: AssetSpec, storage):
        self.store = store
        self.asset = asset
        self.storage = storage
        self.items = OrderedRepository(store, model, name_field="title", neighbor_policy=NeighborPolicy.NEAREST)

    @property
    def collection(self) -> str:
        return self.items.collection

    def validate_upload(self, upload: Optional[AssetUpload], creating: bool = False):
        if upload is None:
            if creating and self.asset.required:
                raise ValidationError(f"A file is required to create {self.collection}")
            return
        if upload.size == 0:
            raise ValidationError("Uploaded file is empty")
        if upload.size > self.asset.max_size:
            raise ValidationError(f"File exceeds the {self.asset.max_size} byte limit")
        if upload.content_type not in self.asset.allowed_types:
            raise ValidationError(f"Unsupported file type {upload.content_type} for {self.collection}")

    def _store_asset(self, entity_id: int, upload: AssetUpload) -> Dict[str, Any]:
        file_name = self.asset.file_name(entity_id, upload)
        url = self.storage.put(self.asset.path(file_name), upload.content, upload.content_type)
        return {
            self.asset.field("url"): url,
            self.asset.field("file_name"): file_name,
            self.asset.field("original_name"): upload.filename,
            self.asset.field("size"): upload.size,
        }

    def _discard_asset(self, file_name: str):
        path = self.asset.path(file_name)
        try:
            self.storage.delete(path)
        except AssetNotFoundError:
            logger.warning(f"Asset {path} was already missing")
        except StorageError as e:
            logger.error(f"Could not delete asset {path}, leaving it orphaned: {e}")

    async def get_items(self) -> List[dict]:
        return await self.items.snapshot(self.items.scope())

    async def get_item(self, item_id: int):
        return await self.items.get(item_id)

    async def create_item(self, data: Dict[str, Any], upload: Optional[AssetUpload] = None):
        """Create the row first (its id names the file), then attach the file"""
        self.validate_upload(upload, creating=True)
        entity = await self.items.create(data)
        if upload is None:
            return entity

        try:
            asset_fields = self._store_asset(entity.id, upload)
        except Exception:
            logger.error(f"Upload for new {self.collection} {entity.id} failed, removing the row")
            await self.items.delete(entity.id)
            raise

        try:
            return await self.items.update(entity.id, asset_fields)
        except Exception:
            self._discard_asset(asset_fields[self.asset.field("file_name")])
            raise

    async def update_item(self, item_id: int, data: Dict[str, Any], upload: Optional[AssetUpload] = None):
        """Update fields; a new file replaces the old one once the row points at it"""
        self.validate_upload(upload)
        if upload is None:
            return await self.items.update(item_id, data)

        current = await self.items.get(item_id)
        old_file_name = getattr(current, self.asset.field("file_name"))
        asset_fields = self._store_asset(item_id, upload)

        try:
            entity = await self.items.update(item_id, {**data, **asset_fields})
        except Exception:
            self._discard_asset(asset_fields[self.asset.field("file_name")])
            raise

        if old_file_name:
            self._discard_asset(old_file_name)
        return entity

    async def delete_item(self, item_id: int):
        """Delete the row, then its file (best effort)"""
        entity = await self.items.delete(item_id)
        file_name = getattr(entity, self.asset.field("file_name"))
        if file_name:
            self._discard_asset(file_name)
        return entity

    async def move_up(self, item_id: int, current_order: Optional[int] = None) -> bool:
        return await self.items.move_up(item_id, current_order=current_order)

    async def move_down(self, item_id: int, current_order: Optional[int] = None, max_order: Optional[int] = None) -> bool:
        return await self.items.move_down(item_id, current_order=current_order, max_order=max_order)

    async def reorder(self, ordered_ids: List[int]) -> list:
        return await self.items.reorder(self.items.scope(), ordered_ids)

    async def subscribe(self, callback) -> Callable[[], None]:
        return await self.items.subscribe(self.items.scope(), callback)


def diagram_service_for(store: DocumentStore, storage) -> MediaService:
    return MediaService(store, Diagram, DIAGRAM_ASSET, storage)


def template_service_for(store: DocumentStore, storage) -> MediaService:
    return MediaService(store, Template, TEMPLATE_ASSET, storage)
