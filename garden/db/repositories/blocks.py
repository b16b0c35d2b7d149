"""
Block repository over a SQLAlchemy session, plus the content codec.

Content is stored as a ``content_type`` discriminator and a JSON payload.
Decoding goes through ``CONTENT_TYPES``; an unknown discriminator or a
payload that disagrees with it is corruption and raises ``StorageError``.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import insert
from sqlalchemy.orm import Session

from garden.db import models, schemas
from garden.errors import StorageError

from .base import storage_errors, timed_query


def encode_content(content: Any) -> Tuple[str, str]:
    """Return ``(content_type, content_json)`` for a content variant."""
    payload = content.model_dump(mode="json")
    content_type = payload["type"]
    if content_type not in schemas.CONTENT_TYPES:
        raise StorageError(f"cannot encode unknown content type '{content_type}'")
    return content_type, json.dumps(payload, separators=(",", ":"), sort_keys=True)


def decode_content(content_type: str, content_json: str):
    cls = schemas.CONTENT_TYPES.get(content_type)
    if cls is None:
        raise StorageError(f"unknown content type '{content_type}' in storage")
    try:
        payload = json.loads(content_json)
    except (TypeError, ValueError) as e:
        raise StorageError(f"content of type '{content_type}' is not valid JSON") from e
    if not isinstance(payload, dict):
        raise StorageError(f"content of type '{content_type}' is not a JSON object")
    tagged = payload.setdefault("type", content_type)
    if tagged != content_type:
        raise StorageError(f"content payload tagged '{tagged}' stored as '{content_type}'")
    try:
        return cls.model_validate(payload)
    except PydanticValidationError as e:
        raise StorageError(f"corrupt '{content_type}' content: {e}") from e


def to_row_values(block: schemas.Block) -> Dict[str, Any]:
    content_type, content_json = encode_content(block.content)
    values = block.model_dump(exclude={"content"})
    values["content_type"] = content_type
    values["content_json"] = content_json
    return values


def to_block(row: models.Block) -> schemas.Block:
    content = decode_content(row.content_type, row.content_json)
    try:
        return schemas.Block(
            id=row.id,
            content=content,
            created_at=row.created_at,
            updated_at=row.updated_at,
            **{name: getattr(row, name) for name in schemas.ARCHIVE_FIELDS},
        )
    except PydanticValidationError as e:
        raise StorageError(f"corrupt block row {row.id}: {e}") from e


class SqlBlockRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, block: schemas.Block) -> schemas.Block:
        values = to_row_values(block)
        with storage_errors("create block"):
            self.session.execute(insert(models.Block).values(**values))
        return block

    def create_batch(self, blocks: Sequence[schemas.Block]) -> List[schemas.Block]:
        if not blocks:
            return []
        rows = [to_row_values(b) for b in blocks]
        with storage_errors("create blocks"):
            self.session.execute(insert(models.Block), rows)
        return list(blocks)

    def get(self, block_id: str) -> Optional[schemas.Block]:
        with storage_errors("get block"):
            row = self.session.query(models.Block).filter(models.Block.id == block_id).first()
        return to_block(row) if row is not None else None

    def list(self, limit: int, offset: int) -> schemas.Page[schemas.Block]:
        with timed_query("block list"), storage_errors("list blocks"):
            q = self.session.query(models.Block)
            total = q.count()
            rows = (
                q.order_by(models.Block.created_at.desc(), models.Block.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        return schemas.Page[schemas.Block](
            items=[to_block(r) for r in rows], total=total, offset=offset, limit=limit
        )

    def update(self, block: schemas.Block) -> Optional[schemas.Block]:
        values = to_row_values(block)
        with storage_errors("update block"):
            row = self.session.query(models.Block).filter(models.Block.id == block.id).first()
            if row is None:
                return None
            for key, value in values.items():
                if key in ("id", "created_at"):
                    continue
                setattr(row, key, value)
            self.session.flush()
        return block

    def delete(self, block_id: str) -> bool:
        # Connections go with it through ON DELETE CASCADE.
        with storage_errors("delete block"):
            deleted = (
                self.session.query(models.Block)
                .filter(models.Block.id == block_id)
                .delete(synchronize_session=False)
            )
            self.session.expire_all()
        return deleted > 0

    def count(self) -> int:
        with storage_errors("count blocks"):
            return self.session.query(models.Block).count()
