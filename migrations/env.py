import os
from logging.config import fileConfig

from alembic import context

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# A connection handed in by Database.migrate() means we run in-process;
# leave the application's logging alone in that case.
external_connection = config.attributes.get("connection")

if config.config_file_name is not None and external_connection is None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# add your model's MetaData object here
# for 'autogenerate' support
from garden.db.models import Base
target_metadata = Base.metadata


def _database_url() -> str:
    return os.getenv("GARDEN_DATABASE_URL") or config.get_main_option("sqlalchemy.url")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL and emits the SQL to the
    script output instead of executing it.
    """
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_with(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    Reuses the connection passed in ``config.attributes["connection"]`` (so
    in-memory stores can be migrated), otherwise opens the store through
    ``Database`` so the usual connection PRAGMAs apply.
    """
    if external_connection is not None:
        _run_with(external_connection)
        return

    from garden.db.database import Database

    db = Database(_database_url())
    try:
        with db.engine.begin() as connection:
            _run_with(connection)
    finally:
        db.close()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
