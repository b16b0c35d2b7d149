"""
Helpers shared by the SQL repositories: storage error translation and
slow-query logging.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from garden.errors import DuplicateError, GardenError, StorageError, ValidationError
from garden.utils.settings import get_settings

logger = logging.getLogger(__name__)


def translate_error(exc: SQLAlchemyError, context: str = "") -> GardenError:
    """Map a SQLAlchemy exception to the nearest domain error."""
    detail = str(getattr(exc, "orig", None) or exc)
    prefix = f"{context}: " if context else ""
    if isinstance(exc, IntegrityError):
        upper = detail.upper()
        if "UNIQUE" in upper or "PRIMARY KEY" in upper:
            return DuplicateError(f"{prefix}duplicate entry ({detail})")
        if "FOREIGN KEY" in upper:
            return ValidationError(f"{prefix}referenced entity does not exist ({detail})")
    return StorageError(f"{prefix}database error ({detail})")


@contextmanager
def storage_errors(context: str = "") -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as domain errors."""
    try:
        yield
    except SQLAlchemyError as e:
        raise translate_error(e, context) from e


@contextmanager
def timed_query(name: str) -> Iterator[None]:
    """Log the duration of a read; warn above ``GARDEN_SLOW_QUERY_MS``."""
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if elapsed_ms > get_settings().slow_query_ms:
            logger.warning("Slow query %s took %.1f ms", name, elapsed_ms)
        else:
            logger.debug("Query %s took %.1f ms", name, elapsed_ms)
