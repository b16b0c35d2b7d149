"""
SQLAlchemy models for the garden store.

Exposes `Base`, `now_utc`, and the ORM classes for the three tables.
"""

from .base import Base, now_utc  # re-export

from .channels import Channel
from .blocks import Block
from .connections import Connection

__all__ = [
    # base
    "Base",
    "now_utc",
    # tables
    "Channel",
    "Block",
    "Connection",
]
