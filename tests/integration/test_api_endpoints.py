import pytest
from fastapi.testclient import TestClient

from garden.api.commands import COMMANDS
from garden.api.main import app, status_for
from garden.errors import ErrorCode
from garden.utils.settings import refresh_settings_cache

pytestmark = pytest.mark.integration


def _run(client, name, payload=None):
    if payload is None:
        return client.post(f"/commands/{name}")
    return client.post(f"/commands/{name}", json=payload)


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "garden"}


def test_lists_command_names(client):
    response = client.get("/commands")
    assert response.status_code == 200
    assert response.json() == sorted(COMMANDS)


@pytest.mark.parametrize(
    "code,status",
    [
        (ErrorCode.CHANNEL_NOT_FOUND, 404),
        (ErrorCode.BLOCK_NOT_FOUND, 404),
        (ErrorCode.CONNECTION_NOT_FOUND, 404),
        (ErrorCode.VALIDATION_ERROR, 422),
        (ErrorCode.DUPLICATE_ERROR, 409),
        (ErrorCode.DATABASE_ERROR, 500),
        (ErrorCode.INTERNAL_ERROR, 500),
    ],
)
def test_status_for_each_error_code(code, status):
    assert status_for(code) == status


def test_channel_flow_over_http(client):
    created = _run(client, "channel_create", {"newChannel": {"title": "Inspiration"}})
    assert created.status_code == 200
    channel = created.json()

    block = _run(client, "block_create", {"newBlock": {"content": {"type": "text", "body": "hi"}}}).json()
    connected = _run(client, "connection_connect", {"blockId": block["id"], "channelId": channel["id"]})
    assert connected.status_code == 200
    assert connected.json()["position"] == 0

    listed = _run(client, "connection_get_blocks_with_positions", {"channelId": channel["id"]})
    assert listed.json() == [{"block": block, "position": 0}]

    assert _run(client, "channel_count").json() == 1
    deleted = _run(client, "channel_delete", {"id": channel["id"]})
    assert deleted.status_code == 200
    assert deleted.json() is None


def test_not_found_body(client):
    response = _run(client, "channel_get", {"id": "missing"})
    assert response.status_code == 404
    assert response.json() == {
        "code": "CHANNEL_NOT_FOUND",
        "message": "Channel not found: missing",
        "entityId": "missing",
    }


def test_duplicate_connection_is_conflict(client):
    channel = _run(client, "channel_create", {"newChannel": {"title": "A"}}).json()
    block = _run(client, "block_create", {"newBlock": {"content": {"type": "text", "body": "x"}}}).json()
    args = {"blockId": block["id"], "channelId": channel["id"]}
    _run(client, "connection_connect", args)

    response = _run(client, "connection_connect", args)
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_ERROR"
    assert response.json()["entityId"] == f"{block['id']}:{channel['id']}"


def test_validation_failures(client):
    response = _run(client, "channel_create", {"newChannel": {"title": "   "}})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert "channel title cannot be empty" in body["message"]

    response = _run(client, "channel_list", {"limit": 0})
    assert response.status_code == 422


def test_unknown_command_is_validation_error(client):
    response = _run(client, "channel_explode", {})
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_lifespan_opens_and_migrates_store(monkeypatch):
    monkeypatch.setenv("GARDEN_DATABASE_URL", "sqlite+pysqlite:///:memory:")
    refresh_settings_cache()

    with TestClient(app) as client:
        assert app.state.database is not None
        created = _run(client, "channel_create", {"newChannel": {"title": "Live"}})
        assert created.status_code == 200
        assert _run(client, "channel_count").json() == 1

    assert app.state.database is None
    assert app.state.service is None
