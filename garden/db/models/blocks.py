from sqlalchemy import Column, Index, Text

from garden.db.types import UTCDateTime
from .base import Base, now_utc


class Block(Base):
    __tablename__ = 'blocks'
    id = Column(Text, primary_key=True)
    # Discriminator plus the JSON payload of the content variant
    content_type = Column(Text, nullable=False)
    content_json = Column(Text, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=now_utc)
    # Archive metadata
    source_url = Column(Text, nullable=True)
    source_title = Column(Text, nullable=True)
    creator = Column(Text, nullable=True)
    original_date = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index('idx_blocks_created_at', 'created_at'),
    )
