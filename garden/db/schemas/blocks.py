"""
Block schemas and the closed content union.

``BlockContent`` is discriminated by ``type``; ``CONTENT_TYPES`` is the one
registry of variants and is what the storage codec consults when decoding.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Annotated, ClassVar, Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from garden.db.models.base import now_utc
from garden.db.schemas.channels import new_id
from garden.db.schemas.common import FieldUpdate, UpdateAction
from garden.errors import ValidationError
from garden.utils.validation import (
    validate_file_path,
    validate_mime_type,
    validate_optional_text,
    validate_text,
    validate_url,
)

DISPLAY_TITLE_MAX = 50


class _ContentBase(BaseModel, ABC):
    model_config = ConfigDict(frozen=True, extra="forbid")

    @abstractmethod
    def display_title(self) -> str:
        ...

    def is_media(self) -> bool:
        return False

    @property
    def media_file_path(self) -> Optional[str]:
        return None

    @property
    def media_mime_type(self) -> Optional[str]:
        return None


class _MediaContent(_ContentBase):
    category: ClassVar[str] = ""

    file_path: str
    mime_type: str
    original_url: Optional[str] = None

    @field_validator("file_path")
    @classmethod
    def _file_path(cls, v: str) -> str:
        return validate_file_path(v)

    @field_validator("mime_type")
    @classmethod
    def _mime_type(cls, v: str) -> str:
        return validate_mime_type(v, cls.category)

    @field_validator("original_url")
    @classmethod
    def _original_url(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_url(v)

    def is_media(self) -> bool:
        return True

    @property
    def media_file_path(self) -> Optional[str]:
        return self.file_path

    @property
    def media_mime_type(self) -> Optional[str]:
        return self.mime_type


class TextContent(_ContentBase):
    type: Literal["text"] = "text"
    body: str

    @field_validator("body")
    @classmethod
    def _body(cls, v: str) -> str:
        return validate_text(v)

    def display_title(self) -> str:
        first_line = self.body.splitlines()[0] if self.body else self.body
        return first_line[:DISPLAY_TITLE_MAX]


class LinkContent(_ContentBase):
    type: Literal["link"] = "link"
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    alt_text: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _url(cls, v: str) -> str:
        return validate_url(v)

    @field_validator("title", "description", "alt_text")
    @classmethod
    def _optional_text(cls, v: Optional[str], info) -> Optional[str]:
        return validate_optional_text(info.field_name, v)

    def display_title(self) -> str:
        return self.title if self.title is not None else self.url


class ImageContent(_MediaContent):
    category = "image"

    type: Literal["image"] = "image"
    width: Optional[int] = Field(default=None, ge=0)
    height: Optional[int] = Field(default=None, ge=0)
    alt_text: Optional[str] = None

    @field_validator("alt_text")
    @classmethod
    def _alt_text(cls, v: Optional[str]) -> Optional[str]:
        return validate_optional_text("alt_text", v)

    def display_title(self) -> str:
        return self.alt_text if self.alt_text is not None else self.file_path


class VideoContent(_MediaContent):
    category = "video"

    type: Literal["video"] = "video"
    width: Optional[int] = Field(default=None, ge=0)
    height: Optional[int] = Field(default=None, ge=0)
    duration: Optional[float] = Field(default=None, ge=0)
    alt_text: Optional[str] = None

    @field_validator("alt_text")
    @classmethod
    def _alt_text(cls, v: Optional[str]) -> Optional[str]:
        return validate_optional_text("alt_text", v)

    def display_title(self) -> str:
        return self.alt_text if self.alt_text is not None else self.file_path


class AudioContent(_MediaContent):
    category = "audio"

    type: Literal["audio"] = "audio"
    duration: Optional[float] = Field(default=None, ge=0)
    title: Optional[str] = None
    artist: Optional[str] = None

    @field_validator("title", "artist")
    @classmethod
    def _optional_text(cls, v: Optional[str], info) -> Optional[str]:
        return validate_optional_text(info.field_name, v)

    def display_title(self) -> str:
        if self.title is not None:
            return self.title
        if self.artist is not None:
            return self.artist
        return self.file_path


BlockContent = Annotated[
    Union[TextContent, LinkContent, ImageContent, VideoContent, AudioContent],
    Field(discriminator="type"),
]

CONTENT_TYPES: Dict[str, Type[_ContentBase]] = {
    "text": TextContent,
    "link": LinkContent,
    "image": ImageContent,
    "video": VideoContent,
    "audio": AudioContent,
}

_content_adapter: TypeAdapter = TypeAdapter(BlockContent)


def parse_content(data) -> _ContentBase:
    """Validate a raw mapping (or an existing variant) into a content variant."""
    if isinstance(data, _ContentBase):
        return data
    try:
        return _content_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


class _ArchiveFields(BaseModel):
    source_url: Optional[str] = None
    source_title: Optional[str] = None
    creator: Optional[str] = None
    original_date: Optional[str] = None
    notes: Optional[str] = None


ARCHIVE_FIELDS = tuple(_ArchiveFields.model_fields)


class NewBlock(_ArchiveFields):
    content: BlockContent


class BlockUpdate(BaseModel):
    content: FieldUpdate = Field(default_factory=FieldUpdate.keep)
    source_url: FieldUpdate = Field(default_factory=FieldUpdate.keep)
    source_title: FieldUpdate = Field(default_factory=FieldUpdate.keep)
    creator: FieldUpdate = Field(default_factory=FieldUpdate.keep)
    original_date: FieldUpdate = Field(default_factory=FieldUpdate.keep)
    notes: FieldUpdate = Field(default_factory=FieldUpdate.keep)

    @field_validator("content")
    @classmethod
    def _content(cls, v: FieldUpdate) -> FieldUpdate:
        if v.action == UpdateAction.SET:
            return FieldUpdate.set(parse_content(v.value))
        return v

    @field_validator(*ARCHIVE_FIELDS)
    @classmethod
    def _archive_text(cls, v: FieldUpdate, info) -> FieldUpdate:
        if v.action == UpdateAction.SET and not isinstance(v.value, str):
            raise ValidationError(f"{info.field_name} must be a string")
        return v


class Block(_ArchiveFields):
    model_config = ConfigDict(frozen=True)

    id: str
    content: BlockContent
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_new(cls, new: NewBlock) -> "Block":
        now = now_utc()
        return cls(
            id=new_id(),
            content=new.content,
            created_at=now,
            updated_at=now,
            **{name: getattr(new, name) for name in ARCHIVE_FIELDS},
        )

    def display_title(self) -> str:
        return self.content.display_title()

    def is_media(self) -> bool:
        return self.content.is_media()
