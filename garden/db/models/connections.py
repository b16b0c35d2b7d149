from sqlalchemy import Column, ForeignKey, Index, Integer, Text

from garden.db.types import UTCDateTime
from .base import Base, now_utc


class Connection(Base):
    __tablename__ = 'connections'
    block_id = Column(Text, ForeignKey('blocks.id', ondelete='CASCADE'), primary_key=True)
    channel_id = Column(Text, ForeignKey('channels.id', ondelete='CASCADE'), primary_key=True)
    # Not unique: bulk shifts pass through transient duplicates row by row
    position = Column(Integer, nullable=False)
    connected_at = Column(UTCDateTime, nullable=False, default=now_utc)

    __table_args__ = (
        Index('idx_connections_channel_position', 'channel_id', 'position'),
        Index('idx_connections_block', 'block_id'),
    )
