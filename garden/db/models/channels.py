from sqlalchemy import Column, Index, Text

from garden.db.types import UTCDateTime
from .base import Base, now_utc


class Channel(Base):
    __tablename__ = 'channels'
    id = Column(Text, primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=now_utc)

    __table_args__ = (
        Index('idx_channels_created_at', 'created_at'),
    )
