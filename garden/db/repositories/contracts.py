"""Repository contracts the domain service programs against.

All interfaces use Protocol (PEP 544) for structural typing: the SQL
repositories and the in-memory fake satisfy them without inheriting.

Expected absence is reported as ``None`` or ``False``, never as an
exception. Implementations raise only ``garden.errors`` types; no storage
library exception crosses these interfaces.
"""
from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple

from garden.db.schemas import Block, Channel, Connection, Page


class ChannelRepository(Protocol):
    def create(self, channel: Channel) -> Channel:
        """Persist a new channel.

        Raises:
            DuplicateError: If a channel with the same id exists.
        """
        ...

    def get(self, channel_id: str) -> Optional[Channel]:
        ...

    def list(self, limit: int, offset: int) -> Page[Channel]:
        """Page through channels, newest first, ties broken by id."""
        ...

    def update(self, channel: Channel) -> Optional[Channel]:
        """Overwrite the stored channel; ``None`` if it does not exist."""
        ...

    def delete(self, channel_id: str) -> bool:
        """Delete a channel and, through the store cascade, its connections."""
        ...

    def count(self) -> int:
        ...


class BlockRepository(Protocol):
    def create(self, block: Block) -> Block:
        ...

    def create_batch(self, blocks: Sequence[Block]) -> List[Block]:
        """Persist all blocks or none of them."""
        ...

    def get(self, block_id: str) -> Optional[Block]:
        ...

    def list(self, limit: int, offset: int) -> Page[Block]:
        ...

    def update(self, block: Block) -> Optional[Block]:
        ...

    def delete(self, block_id: str) -> bool:
        ...

    def count(self) -> int:
        ...


class ConnectionRepository(Protocol):
    """Ordered membership of blocks in channels.

    Positions within one channel are always ``0..n-1``. ``insert_at`` and
    ``rewrite_positions`` maintain that on their own; ``delete`` removes a
    single row and leaves closing the gap to the caller, who holds the
    transaction.
    """

    def get(self, block_id: str, channel_id: str) -> Optional[Connection]:
        ...

    def count_in_channel(self, channel_id: str) -> int:
        ...

    def insert_at(self, block_id: str, channel_id: str, position: int) -> Connection:
        """Shift positions ``>= position`` up by one, then insert.

        Raises:
            DuplicateError: If the pair is already connected.
        """
        ...

    def delete(self, block_id: str, channel_id: str) -> Optional[Connection]:
        """Delete by key; returns the removed connection or ``None``."""
        ...

    def list_by_channel(self, channel_id: str) -> List[Connection]:
        """Connections of a channel in ascending position."""
        ...

    def list_blocks_in_channel(self, channel_id: str) -> List[Tuple[Block, int]]:
        """Blocks of a channel paired with their position, ascending."""
        ...

    def list_by_block(self, block_id: str) -> List[Connection]:
        ...

    def list_channels_for_block(self, block_id: str) -> List[Channel]:
        """Channels containing the block, most recently connected first."""
        ...

    def rewrite_positions(self, channel_id: str, block_ids: Sequence[str]) -> None:
        """Assign positions ``0..n-1`` following ``block_ids``.

        Raises:
            ValidationError: If ``block_ids`` is not a permutation of the
                channel's current members.
        """
        ...


class UnitOfWork(Protocol):
    """Repositories bound to one transaction.

    Used as a context manager: commits on clean exit, rolls back when the
    block raises.
    """

    channels: ChannelRepository
    blocks: BlockRepository
    connections: ConnectionRepository

    def __enter__(self) -> "UnitOfWork":
        ...

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        ...


class UnitOfWorkFactory(Protocol):
    def __call__(self, write: bool = True) -> UnitOfWork:
        ...
