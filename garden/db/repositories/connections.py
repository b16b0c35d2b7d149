"""
Connection repository over a SQLAlchemy session.

Position shifts are single ``UPDATE`` statements; after each bulk statement
the identity map is expired so later reads in the same unit of work see the
new positions.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from sqlalchemy import case, delete, insert, update
from sqlalchemy.orm import Session

from garden.db import models, schemas
from garden.db.models.base import now_utc
from garden.errors import ValidationError

from .base import storage_errors, timed_query
from .blocks import to_block
from .channels import to_channel


def to_connection(row: models.Connection) -> schemas.Connection:
    return schemas.Connection.model_validate(row, from_attributes=True)


class SqlConnectionRepository:
    def __init__(self, session: Session):
        self.session = session

    def _query_pair(self, block_id: str, channel_id: str):
        return self.session.query(models.Connection).filter(
            models.Connection.block_id == block_id,
            models.Connection.channel_id == channel_id,
        )

    def get(self, block_id: str, channel_id: str) -> Optional[schemas.Connection]:
        with storage_errors("get connection"):
            row = self._query_pair(block_id, channel_id).first()
        return to_connection(row) if row is not None else None

    def count_in_channel(self, channel_id: str) -> int:
        with storage_errors("count connections"):
            return (
                self.session.query(models.Connection)
                .filter(models.Connection.channel_id == channel_id)
                .count()
            )

    def insert_at(self, block_id: str, channel_id: str, position: int) -> schemas.Connection:
        connection = schemas.Connection(
            block_id=block_id,
            channel_id=channel_id,
            position=position,
            connected_at=now_utc(),
        )
        with storage_errors("connect block"):
            self.session.execute(
                update(models.Connection)
                .where(
                    models.Connection.channel_id == channel_id,
                    models.Connection.position >= position,
                )
                .values(position=models.Connection.position + 1)
                .execution_options(synchronize_session=False)
            )
            self.session.execute(insert(models.Connection).values(**connection.model_dump()))
            self.session.expire_all()
        return connection

    def delete(self, block_id: str, channel_id: str) -> Optional[schemas.Connection]:
        with storage_errors("disconnect block"):
            row = self._query_pair(block_id, channel_id).first()
            if row is None:
                return None
            removed = to_connection(row)
            self.session.execute(
                delete(models.Connection).where(
                    models.Connection.block_id == block_id,
                    models.Connection.channel_id == channel_id,
                ).execution_options(synchronize_session=False)
            )
            self.session.expire_all()
        return removed

    def list_by_channel(self, channel_id: str) -> List[schemas.Connection]:
        with storage_errors("list connections"):
            rows = (
                self.session.query(models.Connection)
                .filter(models.Connection.channel_id == channel_id)
                .order_by(models.Connection.position.asc())
                .all()
            )
        return [to_connection(r) for r in rows]

    def list_blocks_in_channel(self, channel_id: str) -> List[Tuple[schemas.Block, int]]:
        with timed_query("blocks in channel"), storage_errors("list blocks in channel"):
            rows = (
                self.session.query(models.Block, models.Connection.position)
                .join(models.Connection, models.Connection.block_id == models.Block.id)
                .filter(models.Connection.channel_id == channel_id)
                .order_by(models.Connection.position.asc())
                .all()
            )
        return [(to_block(block), position) for block, position in rows]

    def list_by_block(self, block_id: str) -> List[schemas.Connection]:
        with storage_errors("list connections for block"):
            rows = (
                self.session.query(models.Connection)
                .filter(models.Connection.block_id == block_id)
                .order_by(models.Connection.connected_at.desc(), models.Connection.channel_id.asc())
                .all()
            )
        return [to_connection(r) for r in rows]

    def list_channels_for_block(self, block_id: str) -> List[schemas.Channel]:
        with timed_query("channels for block"), storage_errors("list channels for block"):
            rows = (
                self.session.query(models.Channel)
                .join(models.Connection, models.Connection.channel_id == models.Channel.id)
                .filter(models.Connection.block_id == block_id)
                .order_by(models.Connection.connected_at.desc(), models.Channel.id.asc())
                .all()
            )
        return [to_channel(r) for r in rows]

    def rewrite_positions(self, channel_id: str, block_ids: Sequence[str]) -> None:
        ordered = list(block_ids)
        with storage_errors("rewrite positions"):
            current = [
                bid
                for (bid,) in self.session.query(models.Connection.block_id)
                .filter(models.Connection.channel_id == channel_id)
                .all()
            ]
            if len(set(ordered)) != len(ordered) or set(ordered) != set(current):
                raise ValidationError(
                    f"new order for channel {channel_id} must contain each of its "
                    f"{len(current)} blocks exactly once",
                    entity_id=channel_id,
                )
            if not ordered:
                return
            self.session.execute(
                update(models.Connection)
                .where(models.Connection.channel_id == channel_id)
                .values(
                    position=case(
                        {bid: idx for idx, bid in enumerate(ordered)},
                        value=models.Connection.block_id,
                    )
                )
                .execution_options(synchronize_session=False)
            )
            self.session.expire_all()
