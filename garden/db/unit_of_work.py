"""
SQL unit of work: one session, one transaction, three repositories.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from garden.db.repositories.base import translate_error
from garden.db.repositories.blocks import SqlBlockRepository
from garden.db.repositories.channels import SqlChannelRepository
from garden.db.repositories.connections import SqlConnectionRepository

logger = logging.getLogger(__name__)


class SqlUnitOfWork:
    """Bind the repositories to a fresh session for the span of a ``with`` block.

    Commits on clean exit and rolls back when the block raises. Commit
    failures are translated into domain errors like any other storage error.
    When a ``lock`` is given it is held for the whole unit of work.
    """

    def __init__(self, session_factory: sessionmaker, lock: Optional[threading.Lock] = None):
        self._session_factory = session_factory
        self._lock = lock
        self.session: Optional[Session] = None

    def __enter__(self) -> "SqlUnitOfWork":
        if self._lock is not None:
            self._lock.acquire()
        try:
            self.session = self._session_factory()
        except BaseException:
            self._release()
            raise
        self.channels = SqlChannelRepository(self.session)
        self.blocks = SqlBlockRepository(self.session)
        self.connections = SqlConnectionRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        session = self.session
        self.session = None
        if session is None:
            return
        try:
            if exc_type is None:
                try:
                    session.commit()
                except SQLAlchemyError as e:
                    session.rollback()
                    raise translate_error(e, "commit") from e
            else:
                logger.debug("Rolling back unit of work after %s", exc_type.__name__)
                session.rollback()
        finally:
            session.close()
            self._release()

    def _release(self) -> None:
        if self._lock is not None:
            self._lock.release()
