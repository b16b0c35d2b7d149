"""
In-memory repositories and unit of work.

Satisfies the same contracts as the SQL adapter, including the store-level
cascade and rollback on error, so the service can be exercised without a
database.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from garden.db import schemas
from garden.db.models.base import now_utc
from garden.errors import DuplicateError, ValidationError

_Key = Tuple[str, str]


def _sort_key(entity) -> tuple:
    # created_at descending, id ascending
    return (-entity.created_at.timestamp(), entity.id)


class MemoryStore:
    def __init__(self):
        self.channels: Dict[str, schemas.Channel] = {}
        self.blocks: Dict[str, schemas.Block] = {}
        self.connections: Dict[_Key, schemas.Connection] = {}
        # Monotonic insertion counter, used to order ties in connected_at
        self._seq = 0
        self.connection_seq: Dict[_Key, int] = {}

    def next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def snapshot(self) -> tuple:
        return (
            dict(self.channels),
            dict(self.blocks),
            dict(self.connections),
            dict(self.connection_seq),
        )

    def restore(self, state: tuple) -> None:
        self.channels, self.blocks, self.connections, self.connection_seq = (dict(s) for s in state)

    def cascade_channel(self, channel_id: str) -> None:
        for key in [k for k in self.connections if k[1] == channel_id]:
            del self.connections[key]
            self.connection_seq.pop(key, None)

    def cascade_block(self, block_id: str) -> None:
        for key in [k for k in self.connections if k[0] == block_id]:
            del self.connections[key]
            self.connection_seq.pop(key, None)


class MemoryChannelRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    def create(self, channel: schemas.Channel) -> schemas.Channel:
        if channel.id in self.store.channels:
            raise DuplicateError(f"channel {channel.id} already exists", entity_id=channel.id)
        self.store.channels[channel.id] = channel
        return channel

    def get(self, channel_id: str) -> Optional[schemas.Channel]:
        return self.store.channels.get(channel_id)

    def list(self, limit: int, offset: int) -> schemas.Page[schemas.Channel]:
        ordered = sorted(self.store.channels.values(), key=_sort_key)
        return schemas.Page[schemas.Channel](
            items=ordered[offset:offset + limit], total=len(ordered), offset=offset, limit=limit
        )

    def update(self, channel: schemas.Channel) -> Optional[schemas.Channel]:
        if channel.id not in self.store.channels:
            return None
        self.store.channels[channel.id] = channel
        return channel

    def delete(self, channel_id: str) -> bool:
        if self.store.channels.pop(channel_id, None) is None:
            return False
        self.store.cascade_channel(channel_id)
        return True

    def count(self) -> int:
        return len(self.store.channels)


class MemoryBlockRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    def create(self, block: schemas.Block) -> schemas.Block:
        if block.id in self.store.blocks:
            raise DuplicateError(f"block {block.id} already exists", entity_id=block.id)
        self.store.blocks[block.id] = block
        return block

    def create_batch(self, blocks: Sequence[schemas.Block]) -> List[schemas.Block]:
        ids = [b.id for b in blocks]
        if len(set(ids)) != len(ids) or any(i in self.store.blocks for i in ids):
            raise DuplicateError("block batch contains an existing or repeated id")
        for block in blocks:
            self.store.blocks[block.id] = block
        return list(blocks)

    def get(self, block_id: str) -> Optional[schemas.Block]:
        return self.store.blocks.get(block_id)

    def list(self, limit: int, offset: int) -> schemas.Page[schemas.Block]:
        ordered = sorted(self.store.blocks.values(), key=_sort_key)
        return schemas.Page[schemas.Block](
            items=ordered[offset:offset + limit], total=len(ordered), offset=offset, limit=limit
        )

    def update(self, block: schemas.Block) -> Optional[schemas.Block]:
        if block.id not in self.store.blocks:
            return None
        self.store.blocks[block.id] = block
        return block

    def delete(self, block_id: str) -> bool:
        if self.store.blocks.pop(block_id, None) is None:
            return False
        self.store.cascade_block(block_id)
        return True

    def count(self) -> int:
        return len(self.store.blocks)


class MemoryConnectionRepository:
    def __init__(self, store: MemoryStore):
        self.store = store

    def _in_channel(self, channel_id: str) -> List[schemas.Connection]:
        conns = [c for c in self.store.connections.values() if c.channel_id == channel_id]
        return sorted(conns, key=lambda c: c.position)

    def _set_position(self, conn: schemas.Connection, position: int) -> None:
        key = (conn.block_id, conn.channel_id)
        self.store.connections[key] = conn.model_copy(update={"position": position})

    def get(self, block_id: str, channel_id: str) -> Optional[schemas.Connection]:
        return self.store.connections.get((block_id, channel_id))

    def count_in_channel(self, channel_id: str) -> int:
        return len(self._in_channel(channel_id))

    def insert_at(self, block_id: str, channel_id: str, position: int) -> schemas.Connection:
        key = (block_id, channel_id)
        if key in self.store.connections:
            raise DuplicateError(
                f"block {block_id} is already connected to channel {channel_id}",
                entity_id=f"{block_id}:{channel_id}",
            )
        if channel_id not in self.store.channels or block_id not in self.store.blocks:
            raise ValidationError("referenced entity does not exist")
        for conn in self._in_channel(channel_id):
            if conn.position >= position:
                self._set_position(conn, conn.position + 1)
        connection = schemas.Connection(
            block_id=block_id, channel_id=channel_id, position=position, connected_at=now_utc()
        )
        self.store.connections[key] = connection
        self.store.connection_seq[key] = self.store.next_seq()
        return connection

    def delete(self, block_id: str, channel_id: str) -> Optional[schemas.Connection]:
        key = (block_id, channel_id)
        self.store.connection_seq.pop(key, None)
        return self.store.connections.pop(key, None)

    def list_by_channel(self, channel_id: str) -> List[schemas.Connection]:
        return self._in_channel(channel_id)

    def list_blocks_in_channel(self, channel_id: str) -> List[Tuple[schemas.Block, int]]:
        return [(self.store.blocks[c.block_id], c.position) for c in self._in_channel(channel_id)]

    def _recent_first(self, conns: List[schemas.Connection]) -> List[schemas.Connection]:
        seq = self.store.connection_seq
        return sorted(conns, key=lambda c: -seq.get((c.block_id, c.channel_id), 0))

    def list_by_block(self, block_id: str) -> List[schemas.Connection]:
        return self._recent_first([c for c in self.store.connections.values() if c.block_id == block_id])

    def list_channels_for_block(self, block_id: str) -> List[schemas.Channel]:
        return [self.store.channels[c.channel_id] for c in self.list_by_block(block_id)]

    def rewrite_positions(self, channel_id: str, block_ids: Sequence[str]) -> None:
        ordered = list(block_ids)
        current = {c.block_id: c for c in self._in_channel(channel_id)}
        if len(set(ordered)) != len(ordered) or set(ordered) != set(current):
            raise ValidationError(
                f"new order for channel {channel_id} must contain each of its "
                f"{len(current)} blocks exactly once",
                entity_id=channel_id,
            )
        for idx, bid in enumerate(ordered):
            self._set_position(current[bid], idx)


class MemoryUnitOfWork:
    """Snapshot on enter; restore the snapshot if the block raises."""

    def __init__(self, store: MemoryStore):
        self.store = store
        self.channels = MemoryChannelRepository(store)
        self.blocks = MemoryBlockRepository(store)
        self.connections = MemoryConnectionRepository(store)
        self._snapshot: Optional[tuple] = None

    def __enter__(self) -> "MemoryUnitOfWork":
        self._snapshot = self.store.snapshot()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and self._snapshot is not None:
            self.store.restore(self._snapshot)
        self._snapshot = None


def memory_uow_factory(store: Optional[MemoryStore] = None):
    """Return a ``uow_factory`` bound to one shared in-memory store."""
    store = store if store is not None else MemoryStore()

    def factory(write: bool = True) -> MemoryUnitOfWork:
        return MemoryUnitOfWork(store)

    factory.store = store  # type: ignore[attr-defined]
    return factory
