from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from garden.db.schemas.blocks import Block


class Connection(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    block_id: str
    channel_id: str
    position: int = Field(ge=0)
    connected_at: datetime


class BlockWithPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    block: Block
    position: int = Field(ge=0)
