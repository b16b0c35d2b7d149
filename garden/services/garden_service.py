"""
Garden service: the single entry point for mutations and multi-entity reads.

Every operation runs inside one unit of work obtained from ``uow_factory``.
Mutations ask for a write unit of work so that channel sizes and positions
are read inside the same transaction that changes them; a failure anywhere
in the sequence rolls the whole operation back.

Positions within a channel are always ``0..n-1``. The legal moves are
insert-at (``connect``), remove-at (``disconnect``, block deletion) and
move-to (``reorder``); each one leaves the channel contiguous.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from garden.db import schemas
from garden.db.models.base import now_utc
from garden.db.repositories.contracts import UnitOfWork
from garden.errors import (
    BlockNotFoundError,
    ChannelNotFoundError,
    ConnectionNotFoundError,
    DuplicateError,
    ValidationError,
)
from garden.utils.settings import Settings, get_settings
from garden.utils.validation import validate_position

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _rebuild(model: Type[M], data: Dict[str, Any]) -> M:
    """Construct a frozen entity from field values, re-running validation."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


def _rejected(message: str, entity_id: Optional[str] = None) -> ValidationError:
    logger.warning("Rejected input: %s", message)
    return ValidationError(message, entity_id=entity_id)


class GardenService:
    """Orchestrates channels, blocks and their ordered connections."""

    def __init__(self, uow_factory: Callable[..., UnitOfWork], settings: Optional[Settings] = None):
        self._uow_factory = uow_factory
        self._settings = settings or get_settings()

    def _uow(self, write: bool = True) -> UnitOfWork:
        return self._uow_factory(write=write)

    def _page_args(self, limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
        if limit is None:
            limit = self._settings.default_page_limit
        if offset is None:
            offset = 0
        for name, value in (("limit", limit), ("offset", offset)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise _rejected(f"{name} must be an integer")
        if limit < 1:
            raise _rejected(f"limit must be at least 1, got {limit}")
        if offset < 0:
            raise _rejected(f"offset cannot be negative, got {offset}")
        return min(limit, self._settings.max_page_limit), offset

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def create_channel(self, new_channel: schemas.NewChannel) -> schemas.Channel:
        channel = schemas.Channel.from_new(new_channel)
        with self._uow() as uow:
            uow.channels.create(channel)
        logger.info("Channel created: %s", channel.id)
        return channel

    def get_channel(self, channel_id: str) -> schemas.Channel:
        with self._uow(write=False) as uow:
            channel = uow.channels.get(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        return channel

    def list_channels(self, limit: Optional[int] = None, offset: Optional[int] = None) -> schemas.Page[schemas.Channel]:
        limit, offset = self._page_args(limit, offset)
        with self._uow(write=False) as uow:
            return uow.channels.list(limit, offset)

    def update_channel(self, channel_id: str, update: schemas.ChannelUpdate) -> schemas.Channel:
        with self._uow() as uow:
            current = uow.channels.get(channel_id)
            if current is None:
                raise ChannelNotFoundError(channel_id)
            data = dict(current)
            data["title"] = update.title.apply_required(current.title, "title")
            data["description"] = update.description.apply(current.description)
            data["updated_at"] = now_utc()
            channel = _rebuild(schemas.Channel, data)
            if uow.channels.update(channel) is None:
                raise ChannelNotFoundError(channel_id)
        logger.info("Channel updated: %s", channel_id)
        return channel

    def delete_channel(self, channel_id: str) -> None:
        with self._uow() as uow:
            # The store cascade removes the channel's connections.
            if not uow.channels.delete(channel_id):
                raise ChannelNotFoundError(channel_id)
        logger.info("Channel deleted: %s", channel_id)

    def count_channels(self) -> int:
        with self._uow(write=False) as uow:
            return uow.channels.count()

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def create_block(self, new_block: schemas.NewBlock) -> schemas.Block:
        block = schemas.Block.from_new(new_block)
        with self._uow() as uow:
            uow.blocks.create(block)
        logger.info("Block created: %s (%s)", block.id, block.content.type)
        return block

    def create_blocks(self, new_blocks: Sequence[schemas.NewBlock]) -> List[schemas.Block]:
        """Create every block or none of them."""
        blocks = [schemas.Block.from_new(nb) for nb in new_blocks]
        if not blocks:
            return []
        with self._uow() as uow:
            uow.blocks.create_batch(blocks)
        logger.info("Blocks created: %d", len(blocks))
        return blocks

    def get_block(self, block_id: str) -> schemas.Block:
        with self._uow(write=False) as uow:
            block = uow.blocks.get(block_id)
        if block is None:
            raise BlockNotFoundError(block_id)
        return block

    def list_blocks(self, limit: Optional[int] = None, offset: Optional[int] = None) -> schemas.Page[schemas.Block]:
        limit, offset = self._page_args(limit, offset)
        with self._uow(write=False) as uow:
            return uow.blocks.list(limit, offset)

    def update_block(self, block_id: str, update: schemas.BlockUpdate) -> schemas.Block:
        with self._uow() as uow:
            current = uow.blocks.get(block_id)
            if current is None:
                raise BlockNotFoundError(block_id)
            data = dict(current)
            data["content"] = update.content.apply_required(current.content, "content")
            for name in schemas.ARCHIVE_FIELDS:
                data[name] = getattr(update, name).apply(getattr(current, name))
            data["updated_at"] = now_utc()
            block = _rebuild(schemas.Block, data)
            if uow.blocks.update(block) is None:
                raise BlockNotFoundError(block_id)
        logger.info("Block updated: %s", block_id)
        return block

    def delete_block(self, block_id: str) -> None:
        """Delete a block and close the gap it leaves in each of its channels."""
        with self._uow() as uow:
            if uow.blocks.get(block_id) is None:
                raise BlockNotFoundError(block_id)
            remaining: Dict[str, List[str]] = {}
            for conn in uow.connections.list_by_block(block_id):
                remaining[conn.channel_id] = [
                    c.block_id
                    for c in uow.connections.list_by_channel(conn.channel_id)
                    if c.block_id != block_id
                ]
            # The store cascade removes the block's connections.
            uow.blocks.delete(block_id)
            for channel_id, order in remaining.items():
                uow.connections.rewrite_positions(channel_id, order)
        logger.info("Block deleted: %s (left %d channels)", block_id, len(remaining))

    def count_blocks(self) -> int:
        with self._uow(write=False) as uow:
            return uow.blocks.count()

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    @staticmethod
    def _require_endpoints(uow: UnitOfWork, block_id: str, channel_id: str) -> None:
        if uow.blocks.get(block_id) is None:
            raise BlockNotFoundError(block_id)
        if uow.channels.get(channel_id) is None:
            raise ChannelNotFoundError(channel_id)

    @staticmethod
    def _already_connected(block_id: str, channel_id: str) -> DuplicateError:
        logger.warning("Rejected duplicate connection: block %s in channel %s", block_id, channel_id)
        return DuplicateError(
            f"block {block_id} is already connected to channel {channel_id}",
            entity_id=f"{block_id}:{channel_id}",
        )

    def connect_block(self, block_id: str, channel_id: str, position: Optional[int] = None) -> schemas.Connection:
        """Insert a block into a channel; append when ``position`` is omitted.

        An explicit position must lie in ``[0, n]``; everything at or after it
        moves down one place.
        """
        with self._uow() as uow:
            self._require_endpoints(uow, block_id, channel_id)
            if uow.connections.get(block_id, channel_id) is not None:
                raise self._already_connected(block_id, channel_id)
            size = uow.connections.count_in_channel(channel_id)
            if position is None:
                position = size
            else:
                try:
                    validate_position(position, size)
                except ValidationError as e:
                    raise _rejected(e.message, entity_id=channel_id) from e
            connection = uow.connections.insert_at(block_id, channel_id, position)
        logger.info("Block %s connected to channel %s at %d", block_id, channel_id, position)
        return connection

    def connect_blocks(
        self,
        block_ids: Sequence[str],
        channel_id: str,
        starting_position: Optional[int] = None,
    ) -> List[schemas.Connection]:
        """Insert several blocks at consecutive positions, all or nothing."""
        block_ids = list(block_ids)
        if not block_ids:
            raise _rejected("block_ids cannot be empty", entity_id=channel_id)
        seen = set()
        for block_id in block_ids:
            if block_id in seen:
                logger.warning("Rejected batch: block %s listed twice", block_id)
                raise DuplicateError(f"block {block_id} appears more than once in the batch", entity_id=block_id)
            seen.add(block_id)

        with self._uow() as uow:
            if uow.channels.get(channel_id) is None:
                raise ChannelNotFoundError(channel_id)
            for block_id in block_ids:
                if uow.blocks.get(block_id) is None:
                    raise BlockNotFoundError(block_id)
                if uow.connections.get(block_id, channel_id) is not None:
                    raise self._already_connected(block_id, channel_id)
            size = uow.connections.count_in_channel(channel_id)
            if starting_position is None:
                starting_position = size
            else:
                try:
                    validate_position(starting_position, size, what="starting position")
                except ValidationError as e:
                    raise _rejected(e.message, entity_id=channel_id) from e
            connections = [
                uow.connections.insert_at(block_id, channel_id, starting_position + offset)
                for offset, block_id in enumerate(block_ids)
            ]
        logger.info(
            "Connected %d blocks to channel %s starting at %d", len(connections), channel_id, starting_position
        )
        return connections

    def disconnect_block(self, block_id: str, channel_id: str) -> None:
        """Remove a connection; later positions in the channel move up one."""
        with self._uow() as uow:
            removed = uow.connections.delete(block_id, channel_id)
            if removed is None:
                raise ConnectionNotFoundError(block_id, channel_id)
            order = [c.block_id for c in uow.connections.list_by_channel(channel_id)]
            uow.connections.rewrite_positions(channel_id, order)
        logger.info("Block %s disconnected from channel %s (was at %d)", block_id, channel_id, removed.position)

    def get_connection(self, block_id: str, channel_id: str) -> schemas.Connection:
        with self._uow(write=False) as uow:
            connection = uow.connections.get(block_id, channel_id)
        if connection is None:
            raise ConnectionNotFoundError(block_id, channel_id)
        return connection

    def get_blocks_in_channel(self, channel_id: str) -> List[schemas.Block]:
        return [block for block, _ in self.get_blocks_with_positions(channel_id)]

    def get_blocks_with_positions(self, channel_id: str) -> List[Tuple[schemas.Block, int]]:
        """Blocks of a channel with their positions, ascending by position."""
        with self._uow(write=False) as uow:
            if uow.channels.get(channel_id) is None:
                raise ChannelNotFoundError(channel_id)
            return uow.connections.list_blocks_in_channel(channel_id)

    def get_channels_for_block(self, block_id: str) -> List[schemas.Channel]:
        with self._uow(write=False) as uow:
            if uow.blocks.get(block_id) is None:
                raise BlockNotFoundError(block_id)
            return uow.connections.list_channels_for_block(block_id)

    def reorder_block(self, channel_id: str, block_id: str, new_position: int) -> None:
        """Move a block to ``new_position`` within ``[0, n-1]``.

        Blocks between the old and new position shift one place the other
        way; moving to the current position changes nothing.
        """
        with self._uow() as uow:
            connection = uow.connections.get(block_id, channel_id)
            if connection is None:
                raise ConnectionNotFoundError(block_id, channel_id)
            order = [c.block_id for c in uow.connections.list_by_channel(channel_id)]
            try:
                validate_position(new_position, len(order) - 1, what="new position")
            except ValidationError as e:
                raise _rejected(e.message, entity_id=f"{block_id}:{channel_id}") from e
            if new_position == connection.position:
                return
            order.remove(block_id)
            order.insert(new_position, block_id)
            uow.connections.rewrite_positions(channel_id, order)
        logger.info(
            "Block %s moved in channel %s from %d to %d", block_id, channel_id, connection.position, new_position
        )
