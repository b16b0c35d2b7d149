from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from garden.db.models.base import now_utc
from garden.db.schemas.common import FieldUpdate, UpdateAction
from garden.utils.validation import validate_channel_title, validate_optional_text


def new_id() -> str:
    return str(uuid.uuid4())


class NewChannel(BaseModel):
    title: str
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return validate_channel_title(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]) -> Optional[str]:
        return validate_optional_text("description", v)


class ChannelUpdate(BaseModel):
    title: FieldUpdate = Field(default_factory=FieldUpdate.keep)
    description: FieldUpdate = Field(default_factory=FieldUpdate.keep)

    @field_validator("title")
    @classmethod
    def _title(cls, v: FieldUpdate) -> FieldUpdate:
        if v.action == UpdateAction.SET:
            validate_channel_title(v.value)
        return v

    @field_validator("description")
    @classmethod
    def _description(cls, v: FieldUpdate) -> FieldUpdate:
        if v.action == UpdateAction.SET:
            validate_optional_text("description", v.value)
        return v


class Channel(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    title: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return validate_channel_title(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Optional[str]) -> Optional[str]:
        return validate_optional_text("description", v)

    @classmethod
    def from_new(cls, new: NewChannel) -> "Channel":
        now = now_utc()
        return cls(
            id=new_id(),
            title=new.title,
            description=new.description,
            created_at=now,
            updated_at=now,
        )
