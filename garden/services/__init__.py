"""Business logic services package with public service helpers."""

from typing import Optional

from garden.db.database import Database
from garden.db.repositories.memory import MemoryStore, memory_uow_factory
from garden.utils.settings import Settings

from .garden_service import GardenService


def build_garden_service(db: Database, settings: Optional[Settings] = None) -> GardenService:
    """Service backed by the SQLite store."""
    return GardenService(db.unit_of_work, settings=settings)


def build_memory_garden_service(
    store: Optional[MemoryStore] = None, settings: Optional[Settings] = None
) -> GardenService:
    """Service backed by in-memory repositories; nothing is persisted."""
    return GardenService(memory_uow_factory(store), settings=settings)


__all__ = [
    "GardenService",
    "build_garden_service",
    "build_memory_garden_service",
]
