"""
Database engine and session management.

``Database`` is the single owned handle to the SQLite store. It builds the
engine from settings, installs the connection PRAGMAs, takes over
transaction control from pysqlite so writers open with ``BEGIN IMMEDIATE``,
and hands out units of work.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from garden.db.repositories.base import storage_errors, translate_error
from garden.db.unit_of_work import SqlUnitOfWork
from garden.errors import StorageError
from garden.utils.settings import get_settings

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("channels", "blocks", "connections")

_BEGIN_OPTION = "garden_begin"

# Repository root: alembic.ini and migrations/ live beside the package.
_PROJECT_ROOT = Path(__file__).resolve().parents[2]


def migrations_path() -> Path:
    return Path(os.getenv("GARDEN_MIGRATIONS_DIR", str(_PROJECT_ROOT / "migrations")))


def alembic_config(url: Optional[str] = None) -> Config:
    """Build an Alembic config pointing at the bundled migrations."""
    ini = _PROJECT_ROOT / "alembic.ini"
    cfg = Config(str(ini)) if ini.exists() else Config()
    cfg.set_main_option("script_location", str(migrations_path()))
    if url:
        cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def is_memory_url(url: str) -> bool:
    u = make_url(url)
    if u.get_backend_name() != "sqlite":
        return False
    return u.database in (None, "", ":memory:") or u.query.get("mode") == "memory"


class Database:
    """Owned store handle: open at startup, ``close()`` at shutdown."""

    def __init__(self, url: Optional[str] = None, *, busy_timeout_ms: Optional[int] = None):
        settings = get_settings()
        self.url = url or settings.resolved_database_url()
        self.busy_timeout_ms = busy_timeout_ms if busy_timeout_ms is not None else settings.busy_timeout_ms
        try:
            self.engine = self._create_engine(self.url)
        except SQLAlchemyError as e:
            raise translate_error(e, f"open {self.url}") from e
        # In-memory stores share one connection; units of work take turns on it
        self._memory_lock = threading.Lock() if is_memory_url(self.url) else None
        self._read_sessions = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )
        self._write_sessions = sessionmaker(
            bind=self.engine.execution_options(**{_BEGIN_OPTION: "IMMEDIATE"}),
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Opened garden store at %s", self.engine.url.render_as_string(hide_password=True))

    def _create_engine(self, url: str) -> Engine:
        u = make_url(url)
        is_sqlite = u.get_backend_name() == "sqlite"
        memory = is_memory_url(url)
        kwargs = {}
        if is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False}
            if memory:
                # One shared connection so the schema persists across sessions
                kwargs["poolclass"] = StaticPool
            elif u.database:
                Path(u.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(url, **kwargs)
        if is_sqlite:
            self._install_sqlite_events(engine, memory)
        return engine

    def _install_sqlite_events(self, engine: Engine, memory: bool) -> None:
        busy_timeout_ms = self.busy_timeout_ms

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, connection_record):
            # Let SQLAlchemy emit BEGIN itself (see _on_begin).
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
                if not memory:
                    cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            finally:
                cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            mode = conn.get_execution_options().get(_BEGIN_OPTION, "DEFERRED")
            conn.exec_driver_sql(f"BEGIN {mode}")

    def unit_of_work(self, write: bool = True) -> SqlUnitOfWork:
        """Repositories bound to one transaction; writers take the write lock up front."""
        return SqlUnitOfWork(
            self._write_sessions if write else self._read_sessions, lock=self._memory_lock
        )

    def migrate(self, revision: str = "head") -> None:
        """Apply Alembic migrations on this engine, then verify the schema."""
        cfg = alembic_config(self.url)
        with storage_errors("migrate"):
            with self.engine.begin() as conn:
                cfg.attributes["connection"] = conn
                command.upgrade(cfg, revision)
        logger.info("Migrated garden store to %s", revision)
        self.verify_schema()

    def downgrade(self, revision: str) -> None:
        cfg = alembic_config(self.url)
        with storage_errors("downgrade"):
            with self.engine.begin() as conn:
                cfg.attributes["connection"] = conn
                command.downgrade(cfg, revision)
        logger.info("Downgraded garden store to %s", revision)

    def verify_schema(self) -> None:
        with storage_errors("verify schema"):
            tables = set(inspect(self.engine).get_table_names())
        missing = [t for t in REQUIRED_TABLES if t not in tables]
        if missing:
            raise StorageError(f"garden store is missing tables: {', '.join(missing)}")

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Closed garden store")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
