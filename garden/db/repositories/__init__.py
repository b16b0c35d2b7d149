"""
Repository contracts and their implementations.

`contracts` holds the Protocols the service depends on; the `Sql*` classes
implement them over a SQLAlchemy session and the `Memory*` classes over
plain dictionaries.
"""

from .contracts import (
    BlockRepository,
    ChannelRepository,
    ConnectionRepository,
    UnitOfWork,
    UnitOfWorkFactory,
)
from .channels import SqlChannelRepository
from .blocks import SqlBlockRepository, decode_content, encode_content
from .connections import SqlConnectionRepository
from .memory import (
    MemoryBlockRepository,
    MemoryChannelRepository,
    MemoryConnectionRepository,
    MemoryStore,
    MemoryUnitOfWork,
    memory_uow_factory,
)

__all__ = [
    # contracts
    "BlockRepository",
    "ChannelRepository",
    "ConnectionRepository",
    "UnitOfWork",
    "UnitOfWorkFactory",
    # sql
    "SqlChannelRepository",
    "SqlBlockRepository",
    "SqlConnectionRepository",
    "decode_content",
    "encode_content",
    # memory
    "MemoryBlockRepository",
    "MemoryChannelRepository",
    "MemoryConnectionRepository",
    "MemoryStore",
    "MemoryUnitOfWork",
    "memory_uow_factory",
]
