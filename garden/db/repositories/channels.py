"""
Channel repository over a SQLAlchemy session.

The session belongs to the unit of work; nothing here commits.
"""
from __future__ import annotations

from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import insert
from sqlalchemy.orm import Session

from garden.db import models, schemas
from garden.errors import StorageError

from .base import storage_errors, timed_query


def to_channel(row: models.Channel) -> schemas.Channel:
    try:
        return schemas.Channel.model_validate(row, from_attributes=True)
    except PydanticValidationError as e:
        raise StorageError(f"corrupt channel row {row.id}: {e}") from e


class SqlChannelRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, channel: schemas.Channel) -> schemas.Channel:
        with storage_errors("create channel"):
            self.session.execute(insert(models.Channel).values(**channel.model_dump()))
        return channel

    def get(self, channel_id: str) -> Optional[schemas.Channel]:
        with storage_errors("get channel"):
            row = self.session.query(models.Channel).filter(models.Channel.id == channel_id).first()
        return to_channel(row) if row is not None else None

    def list(self, limit: int, offset: int) -> schemas.Page[schemas.Channel]:
        with timed_query("channel list"), storage_errors("list channels"):
            q = self.session.query(models.Channel)
            total = q.count()
            rows = (
                q.order_by(models.Channel.created_at.desc(), models.Channel.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        return schemas.Page[schemas.Channel](
            items=[to_channel(r) for r in rows], total=total, offset=offset, limit=limit
        )

    def update(self, channel: schemas.Channel) -> Optional[schemas.Channel]:
        with storage_errors("update channel"):
            row = self.session.query(models.Channel).filter(models.Channel.id == channel.id).first()
            if row is None:
                return None
            for key, value in channel.model_dump(exclude={"id", "created_at"}).items():
                setattr(row, key, value)
            self.session.flush()
        return channel

    def delete(self, channel_id: str) -> bool:
        # Connections go with it through ON DELETE CASCADE.
        with storage_errors("delete channel"):
            deleted = (
                self.session.query(models.Channel)
                .filter(models.Channel.id == channel_id)
                .delete(synchronize_session=False)
            )
            self.session.expire_all()
        return deleted > 0

    def count(self) -> int:
        with storage_errors("count channels"):
            return self.session.query(models.Channel).count()
