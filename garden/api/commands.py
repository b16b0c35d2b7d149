"""
Command table for the process boundary.

Each command takes a JSON object of named arguments (snake_case or the
camelCase names a JavaScript caller sends), calls the service and returns
JSON-ready data. Failures leave as ``GardenError``; anything unexpected is
logged and reported as ``INTERNAL_ERROR``.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from garden.db import schemas
from garden.errors import GardenError, InternalError, ValidationError
from garden.services.garden_service import GardenService

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=BaseModel)

Handler = Callable[[GardenService, Dict[str, Any]], Any]


class _Args(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class _IdArgs(_Args):
    id: str


class _ListArgs(_Args):
    limit: Optional[int] = None
    offset: Optional[int] = None


class _ChannelCreateArgs(_Args):
    new_channel: schemas.NewChannel = Field(alias="newChannel")


class _ChannelUpdateArgs(_Args):
    id: str
    update: schemas.ChannelUpdate = Field(default_factory=schemas.ChannelUpdate)


class _BlockCreateArgs(_Args):
    new_block: schemas.NewBlock = Field(alias="newBlock")


class _BlockCreateBatchArgs(_Args):
    new_blocks: List[schemas.NewBlock] = Field(alias="newBlocks")


class _BlockUpdateArgs(_Args):
    id: str
    update: schemas.BlockUpdate = Field(default_factory=schemas.BlockUpdate)


class _PairArgs(_Args):
    block_id: str = Field(alias="blockId")
    channel_id: str = Field(alias="channelId")


class _ConnectArgs(_PairArgs):
    position: Optional[int] = None


class _ConnectBatchArgs(_Args):
    block_ids: List[str] = Field(alias="blockIds")
    channel_id: str = Field(alias="channelId")
    starting_position: Optional[int] = Field(default=None, alias="startingPosition")


class _ChannelIdArgs(_Args):
    channel_id: str = Field(alias="channelId")


class _BlockIdArgs(_Args):
    block_id: str = Field(alias="blockId")


class _ReorderArgs(_PairArgs):
    new_position: int = Field(alias="newPosition")


def _parse(model: Type[A], payload: Dict[str, Any]) -> A:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e) from e


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def channel_create(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ChannelCreateArgs, payload)
    return _dump(service.create_channel(args.new_channel))


def channel_get(service: GardenService, payload: Dict[str, Any]):
    return _dump(service.get_channel(_parse(_IdArgs, payload).id))


def channel_list(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ListArgs, payload)
    return _dump(service.list_channels(args.limit, args.offset))


def channel_update(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ChannelUpdateArgs, payload)
    return _dump(service.update_channel(args.id, args.update))


def channel_delete(service: GardenService, payload: Dict[str, Any]):
    service.delete_channel(_parse(_IdArgs, payload).id)
    return None


def channel_count(service: GardenService, payload: Dict[str, Any]):
    _parse(_Args, payload)
    return service.count_channels()


def block_create(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_BlockCreateArgs, payload)
    return _dump(service.create_block(args.new_block))


def block_create_batch(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_BlockCreateBatchArgs, payload)
    return _dump(service.create_blocks(args.new_blocks))


def block_get(service: GardenService, payload: Dict[str, Any]):
    return _dump(service.get_block(_parse(_IdArgs, payload).id))


def block_list(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ListArgs, payload)
    return _dump(service.list_blocks(args.limit, args.offset))


def block_update(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_BlockUpdateArgs, payload)
    return _dump(service.update_block(args.id, args.update))


def block_delete(service: GardenService, payload: Dict[str, Any]):
    service.delete_block(_parse(_IdArgs, payload).id)
    return None


def block_count(service: GardenService, payload: Dict[str, Any]):
    _parse(_Args, payload)
    return service.count_blocks()


def connection_connect(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ConnectArgs, payload)
    return _dump(service.connect_block(args.block_id, args.channel_id, args.position))


def connection_connect_batch(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ConnectBatchArgs, payload)
    return _dump(service.connect_blocks(args.block_ids, args.channel_id, args.starting_position))


def connection_disconnect(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_PairArgs, payload)
    service.disconnect_block(args.block_id, args.channel_id)
    return None


def connection_get(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_PairArgs, payload)
    return _dump(service.get_connection(args.block_id, args.channel_id))


def connection_get_blocks_in_channel(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ChannelIdArgs, payload)
    return _dump(service.get_blocks_in_channel(args.channel_id))


def connection_get_blocks_with_positions(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ChannelIdArgs, payload)
    pairs = service.get_blocks_with_positions(args.channel_id)
    return _dump([schemas.BlockWithPosition(block=block, position=pos) for block, pos in pairs])


def connection_get_channels_for_block(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_BlockIdArgs, payload)
    return _dump(service.get_channels_for_block(args.block_id))


def connection_reorder(service: GardenService, payload: Dict[str, Any]):
    args = _parse(_ReorderArgs, payload)
    service.reorder_block(args.channel_id, args.block_id, args.new_position)
    return None


COMMANDS: Dict[str, Handler] = {
    "channel_create": channel_create,
    "channel_get": channel_get,
    "channel_list": channel_list,
    "channel_update": channel_update,
    "channel_delete": channel_delete,
    "channel_count": channel_count,
    "block_create": block_create,
    "block_create_batch": block_create_batch,
    "block_get": block_get,
    "block_list": block_list,
    "block_update": block_update,
    "block_delete": block_delete,
    "block_count": block_count,
    "connection_connect": connection_connect,
    "connection_connect_batch": connection_connect_batch,
    "connection_disconnect": connection_disconnect,
    "connection_get": connection_get,
    "connection_get_blocks_in_channel": connection_get_blocks_in_channel,
    "connection_get_blocks_with_positions": connection_get_blocks_with_positions,
    "connection_get_channels_for_block": connection_get_channels_for_block,
    "connection_reorder": connection_reorder,
}


def dispatch(service: GardenService, name: str, payload: Optional[Dict[str, Any]] = None) -> Any:
    """Run one command and return its JSON-ready result."""
    handler = COMMANDS.get(name)
    if handler is None:
        raise ValidationError(f"unknown command '{name}'")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("command arguments must be a JSON object")
    try:
        return handler(service, payload)
    except GardenError:
        raise
    except Exception as e:
        logger.exception("Command %s failed unexpectedly", name)
        raise InternalError(f"internal error while running {name}") from e
