import pytest
from fastapi.testclient import TestClient

from garden.db.database import Database
from garden.services import build_garden_service, build_memory_garden_service
from garden.utils.settings import refresh_settings_cache

MEMORY_URL = "sqlite+pysqlite:///:memory:"

_GARDEN_ENV = [
    "GARDEN_DATABASE_URL",
    "GARDEN_DATABASE_PATH",
    "GARDEN_BUSY_TIMEOUT_MS",
    "GARDEN_SLOW_QUERY_MS",
    "GARDEN_DEFAULT_PAGE_LIMIT",
    "GARDEN_MAX_PAGE_LIMIT",
    "GARDEN_MIGRATIONS_DIR",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Clear garden env + cached settings for each test to avoid cross-contamination."""
    for env_name in _GARDEN_ENV:
        monkeypatch.delenv(env_name, raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture
def database():
    """Migrated in-memory store, closed after the test."""
    db = Database(MEMORY_URL)
    db.migrate()
    yield db
    db.close()


@pytest.fixture
def sql_service(database):
    return build_garden_service(database)


@pytest.fixture
def memory_service():
    return build_memory_garden_service()


@pytest.fixture(params=["memory", "sql"])
def service(request):
    """The service over each repository implementation."""
    if request.param == "memory":
        return build_memory_garden_service()
    return build_garden_service(request.getfixturevalue("database"))


@pytest.fixture
def client(sql_service):
    from garden.api.deps import get_service
    from garden.api.main import app

    app.dependency_overrides[get_service] = lambda: sql_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_service, None)

