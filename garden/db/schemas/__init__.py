"""
Pydantic schemas for the garden entity model.

Entities are frozen; updates build new instances through the service.
"""

from .common import FieldUpdate, Page, UpdateAction
from .channels import Channel, ChannelUpdate, NewChannel, new_id
from .blocks import (
    ARCHIVE_FIELDS,
    CONTENT_TYPES,
    AudioContent,
    Block,
    BlockContent,
    BlockUpdate,
    ImageContent,
    LinkContent,
    NewBlock,
    TextContent,
    VideoContent,
    parse_content,
)
from .connections import BlockWithPosition, Connection

__all__ = [
    # common
    "FieldUpdate",
    "Page",
    "UpdateAction",
    # channels
    "Channel",
    "ChannelUpdate",
    "NewChannel",
    "new_id",
    # blocks
    "ARCHIVE_FIELDS",
    "CONTENT_TYPES",
    "AudioContent",
    "Block",
    "BlockContent",
    "BlockUpdate",
    "ImageContent",
    "LinkContent",
    "NewBlock",
    "TextContent",
    "VideoContent",
    "parse_content",
    # connections
    "BlockWithPosition",
    "Connection",
]
