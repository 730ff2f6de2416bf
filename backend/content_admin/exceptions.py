"""Errors raised by the ordering core, the document store and object storage"""
from typing import Optional


class ContentError(Exception):
    """Base class for content admin errors"""


class EntityNotFoundError(ContentError):
    """The subject entity of an operation does not exist"""

    def __init__(self, collection: str, entity_id):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} {entity_id} not found")


class ValidationError(ContentError):
    """Input rejected before any write (bad reorder list, wrong parent, ...)"""


class TransactionConflictError(ContentError):
    """Concurrent modification kept winning after all retry attempts.

    Transient: the operator can simply retry the action.
    """

    def __init__(self, attempts: int, cause: Optional[Exception] = None):
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Transaction aborted after {attempts} attempts due to concurrent modification")


class CascadeDeleteError(ContentError):
    """A cascade delete could not be committed; nothing was removed"""

    def __init__(self, collection: str, entity_id, cause: Optional[Exception] = None):
        self.collection = collection
        self.entity_id = entity_id
        self.cause = cause
        super().__init__(f"Cascade delete of {collection} {entity_id} failed, please retry")


class StorageError(ContentError):
    """Object storage request failed"""


class AssetNotFoundError(StorageError):
    """Object does not exist in storage"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Asset not found: {path}")
