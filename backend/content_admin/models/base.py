from datetime import datetime, timezone

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declared_attr


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderedMixin:
    """Columns shared by every orderable entity.

    `order` is unique within the entity's sibling scope (enforced per table by a
    unique constraint). `version` is the optimistic-concurrency counter: an
    UPDATE whose version no longer matches raises StaleDataError and the
    surrounding transaction is retried.
    """

    id = Column(Integer, primary_key=True, index=True)
    order = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False)
    # Python-side timestamps so values are known without a refresh after flush
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @declared_attr.directive
    def __mapper_args__(cls):
        return {"version_id_col": cls.version}

    def to_dict(self) -> dict:
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}
