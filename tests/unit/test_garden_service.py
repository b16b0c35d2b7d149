"""
Service behaviour, run against both the in-memory fake and the SQLite store
through the parametrized ``service`` fixture.
"""
import time

import pytest

from garden.db import schemas
from garden.db.schemas import FieldUpdate
from garden.errors import (
    BlockNotFoundError,
    ChannelNotFoundError,
    ConnectionNotFoundError,
    DuplicateError,
    ErrorCode,
    ValidationError,
)
from tests.helpers import assert_contiguous, new_channel, positions, text_block


def _blocks(service, *bodies):
    return [service.create_block(text_block(body)) for body in bodies]


class TestChannels:
    def test_create_channel_without_description(self, service):
        channel = service.create_channel(new_channel("Inspiration"))
        assert channel.id
        assert channel.title == "Inspiration"
        assert channel.description is None
        assert service.get_channel(channel.id) == channel

    def test_get_missing_channel(self, service):
        with pytest.raises(ChannelNotFoundError) as exc_info:
            service.get_channel("nope")
        assert exc_info.value.entity_id == "nope"

    def test_update_applies_field_updates(self, service):
        channel = service.create_channel(new_channel("Old", "desc"))

        kept = service.update_channel(channel.id, schemas.ChannelUpdate())
        assert kept.title == "Old"
        assert kept.description == "desc"

        updated = service.update_channel(
            channel.id,
            schemas.ChannelUpdate(title=FieldUpdate.set("New"), description=FieldUpdate.clear()),
        )
        assert updated.title == "New"
        assert updated.description is None
        assert updated.created_at == channel.created_at
        assert updated.updated_at >= channel.updated_at
        assert service.get_channel(channel.id) == updated

    def test_clearing_title_rejected(self, service):
        channel = service.create_channel(new_channel("Keep me"))
        with pytest.raises(ValidationError):
            service.update_channel(channel.id, schemas.ChannelUpdate(title=FieldUpdate.clear()))
        assert service.get_channel(channel.id).title == "Keep me"

    def test_update_missing_channel(self, service):
        with pytest.raises(ChannelNotFoundError):
            service.update_channel("nope", schemas.ChannelUpdate())

    def test_delete_channel_cascades_to_connections_only(self, service):
        channel = service.create_channel(new_channel("A"))
        other = service.create_channel(new_channel("B"))
        a, b = _blocks(service, "a", "b")
        service.connect_block(a.id, channel.id)
        service.connect_block(b.id, channel.id)
        service.connect_block(a.id, other.id)

        service.delete_channel(channel.id)

        with pytest.raises(ChannelNotFoundError):
            service.get_channel(channel.id)
        assert service.get_block(a.id) == a
        assert service.get_block(b.id) == b
        assert [c.id for c in service.get_channels_for_block(a.id)] == [other.id]
        assert service.get_channels_for_block(b.id) == []
        with pytest.raises(ConnectionNotFoundError):
            service.get_connection(b.id, channel.id)

    def test_delete_missing_channel(self, service):
        with pytest.raises(ChannelNotFoundError):
            service.delete_channel("nope")

    def test_count(self, service):
        assert service.count_channels() == 0
        service.create_channel(new_channel("A"))
        service.create_channel(new_channel("B"))
        assert service.count_channels() == 2


class TestPagination:
    def test_pages_reconstruct_full_order(self, service):
        created = [service.create_channel(new_channel(f"C{i}")) for i in range(7)]
        full = service.list_channels(limit=100, offset=0)
        assert full.total == 7
        assert {c.id for c in full.items} == {c.id for c in created}

        stitched = []
        offset = 0
        while True:
            page = service.list_channels(limit=3, offset=offset)
            stitched.extend(page.items)
            if not page.has_next:
                break
            offset += 3
        assert [c.id for c in stitched] == [c.id for c in full.items]

    def test_order_is_newest_first(self, service):
        first = service.create_channel(new_channel("first"))
        second = service.create_channel(new_channel("second"))
        items = service.list_channels().items
        expected = sorted([first, second], key=lambda c: (-c.created_at.timestamp(), c.id))
        assert [c.id for c in items] == [c.id for c in expected]

    def test_defaults_and_clamp(self, service):
        page = service.list_channels()
        assert (page.limit, page.offset) == (20, 0)
        assert service.list_channels(limit=1000).limit == 100

    @pytest.mark.parametrize("limit,offset", [(0, 0), (-1, 0), (10, -1)])
    def test_invalid_arguments(self, service, limit, offset):
        with pytest.raises(ValidationError):
            service.list_channels(limit=limit, offset=offset)

    def test_offset_past_end_is_empty(self, service):
        service.create_channel(new_channel("A"))
        page = service.list_channels(limit=10, offset=5)
        assert page.items == []
        assert page.total == 1

    def test_block_listing(self, service):
        _blocks(service, "a", "b", "c")
        page = service.list_blocks(limit=2)
        assert page.total == 3
        assert len(page.items) == 2
        assert service.count_blocks() == 3


class TestBlocks:
    def test_create_and_get(self, service):
        block = service.create_block(text_block("hello", source_url="https://example.com"))
        fetched = service.get_block(block.id)
        assert fetched == block
        assert fetched.content.body == "hello"
        assert fetched.source_url == "https://example.com"

    def test_create_batch(self, service):
        blocks = service.create_blocks([text_block("a"), text_block("b")])
        assert len(blocks) == 2
        assert service.count_blocks() == 2
        assert service.create_blocks([]) == []

    def test_update_clear_notes_keeps_everything_else(self, service):
        block = service.create_block(text_block("body", notes="draft", creator="Ada"))

        updated = service.update_block(block.id, schemas.BlockUpdate(notes=FieldUpdate.clear()))

        assert updated.notes is None
        assert updated.content == block.content
        assert updated.creator == "Ada"
        assert updated.source_url is None
        assert updated.created_at == block.created_at
        assert service.get_block(block.id) == updated

    def test_update_sets_content_and_archive_fields(self, service):
        block = service.create_block(text_block("body"))
        updated = service.update_block(
            block.id,
            schemas.BlockUpdate(
                content=FieldUpdate.set(schemas.LinkContent(url="https://example.com")),
                source_title=FieldUpdate.set("Example"),
            ),
        )
        assert updated.content.type == "link"
        assert updated.source_title == "Example"
        assert service.get_block(block.id).content == schemas.LinkContent(url="https://example.com")

    def test_clearing_content_rejected(self, service):
        block = service.create_block(text_block("body"))
        with pytest.raises(ValidationError):
            service.update_block(block.id, schemas.BlockUpdate(content=FieldUpdate.clear()))
        assert service.get_block(block.id).content == block.content

    def test_missing_block(self, service):
        with pytest.raises(BlockNotFoundError):
            service.get_block("nope")
        with pytest.raises(BlockNotFoundError):
            service.update_block("nope", schemas.BlockUpdate())
        with pytest.raises(BlockNotFoundError):
            service.delete_block("nope")

    def test_delete_block_closes_gaps_in_every_channel(self, service):
        left = service.create_channel(new_channel("left"))
        right = service.create_channel(new_channel("right"))
        a, b, c = _blocks(service, "a", "b", "c")
        for block in (a, b, c):
            service.connect_block(block.id, left.id)
        service.connect_block(c.id, right.id)
        service.connect_block(b.id, right.id)

        service.delete_block(b.id)

        assert positions(service, left.id) == [(a.id, 0), (c.id, 1)]
        assert positions(service, right.id) == [(c.id, 0)]
        assert service.count_blocks() == 2
        assert service.get_block(a.id) == a


class TestConnections:
    def test_append_without_positions(self, service):
        channel = service.create_channel(new_channel())
        a, b, c = _blocks(service, "A", "B", "C")
        for block in (a, b, c):
            service.connect_block(block.id, channel.id)
        assert positions(service, channel.id) == [(a.id, 0), (b.id, 1), (c.id, 2)]
        assert [blk.id for blk in service.get_blocks_in_channel(channel.id)] == [a.id, b.id, c.id]

    def test_disconnect_closes_gap(self, service):
        channel = service.create_channel(new_channel())
        a, b, c = _blocks(service, "A", "B", "C")
        for block in (a, b, c):
            service.connect_block(block.id, channel.id)

        service.disconnect_block(b.id, channel.id)

        assert positions(service, channel.id) == [(a.id, 0), (c.id, 1)]
        assert service.get_connection(c.id, channel.id).position == 1

    def test_reorder_two_items(self, service):
        channel = service.create_channel(new_channel())
        a, c = _blocks(service, "A", "C")
        service.connect_block(a.id, channel.id)
        service.connect_block(c.id, channel.id)

        service.reorder_block(channel.id, c.id, 0)

        assert positions(service, channel.id) == [(c.id, 0), (a.id, 1)]

    def test_connect_batch_at_start_shifts_existing(self, service):
        channel = service.create_channel(new_channel())
        a, c, x, y = _blocks(service, "A", "C", "X", "Y")
        service.connect_block(a.id, channel.id)
        service.connect_block(c.id, channel.id)

        created = service.connect_blocks([x.id, y.id], channel.id, starting_position=0)

        assert [(conn.block_id, conn.position) for conn in created] == [(x.id, 0), (y.id, 1)]
        assert positions(service, channel.id) == [(x.id, 0), (y.id, 1), (a.id, 2), (c.id, 3)]

    def test_connect_batch_appends_by_default(self, service):
        channel = service.create_channel(new_channel())
        a, x, y = _blocks(service, "A", "X", "Y")
        service.connect_block(a.id, channel.id)
        service.connect_blocks([x.id, y.id], channel.id)
        assert positions(service, channel.id) == [(a.id, 0), (x.id, 1), (y.id, 2)]

    def test_connect_at_explicit_position_shifts_tail(self, service):
        channel = service.create_channel(new_channel())
        a, b, c = _blocks(service, "A", "B", "C")
        service.connect_block(a.id, channel.id)
        service.connect_block(b.id, channel.id)

        connection = service.connect_block(c.id, channel.id, position=1)

        assert connection.position == 1
        assert positions(service, channel.id) == [(a.id, 0), (c.id, 1), (b.id, 2)]

    def test_connect_at_end_position_allowed(self, service):
        channel = service.create_channel(new_channel())
        a, b = _blocks(service, "A", "B")
        service.connect_block(a.id, channel.id)
        assert service.connect_block(b.id, channel.id, position=1).position == 1

    @pytest.mark.parametrize("position", [-1, 2, 10])
    def test_connect_out_of_range_rejected(self, service, position):
        channel = service.create_channel(new_channel())
        a, b = _blocks(service, "A", "B")
        service.connect_block(a.id, channel.id)
        with pytest.raises(ValidationError):
            service.connect_block(b.id, channel.id, position=position)
        assert positions(service, channel.id) == [(a.id, 0)]

    def test_duplicate_connect_rejected_and_position_unchanged(self, service):
        channel = service.create_channel(new_channel())
        a, b = _blocks(service, "A", "B")
        service.connect_block(a.id, channel.id)
        service.connect_block(b.id, channel.id)

        with pytest.raises(DuplicateError) as exc_info:
            service.connect_block(a.id, channel.id, position=1)

        assert exc_info.value.code is ErrorCode.DUPLICATE_ERROR
        assert exc_info.value.entity_id == f"{a.id}:{channel.id}"
        assert positions(service, channel.id) == [(a.id, 0), (b.id, 1)]

    def test_connect_missing_endpoints(self, service):
        channel = service.create_channel(new_channel())
        (block,) = _blocks(service, "A")
        with pytest.raises(BlockNotFoundError):
            service.connect_block("nope", channel.id)
        with pytest.raises(ChannelNotFoundError):
            service.connect_block(block.id, "nope")

    def test_connect_batch_is_all_or_nothing(self, service):
        channel = service.create_channel(new_channel())
        a, b = _blocks(service, "A", "B")
        service.connect_block(a.id, channel.id)

        with pytest.raises(DuplicateError):
            service.connect_blocks([b.id, a.id], channel.id)
        with pytest.raises(BlockNotFoundError):
            service.connect_blocks([b.id, "nope"], channel.id)

        assert positions(service, channel.id) == [(a.id, 0)]

    def test_connect_batch_rejects_empty_and_repeats(self, service):
        channel = service.create_channel(new_channel())
        (a,) = _blocks(service, "A")
        with pytest.raises(ValidationError):
            service.connect_blocks([], channel.id)
        with pytest.raises(DuplicateError) as exc_info:
            service.connect_blocks([a.id, a.id], channel.id)
        assert exc_info.value.entity_id == a.id
        with pytest.raises(ValidationError):
            service.connect_blocks([a.id], channel.id, starting_position=3)

    def test_disconnect_missing(self, service):
        channel = service.create_channel(new_channel())
        (a,) = _blocks(service, "A")
        with pytest.raises(ConnectionNotFoundError) as exc_info:
            service.disconnect_block(a.id, channel.id)
        assert exc_info.value.entity_id == f"{a.id}:{channel.id}"

    def test_reorder_moves_down_and_up(self, service):
        channel = service.create_channel(new_channel())
        blocks = _blocks(service, "0", "1", "2", "3", "4")
        for block in blocks:
            service.connect_block(block.id, channel.id)
        ids = [b.id for b in blocks]

        service.reorder_block(channel.id, ids[1], 3)
        assert [bid for bid, _ in positions(service, channel.id)] == [ids[0], ids[2], ids[3], ids[1], ids[4]]

        service.reorder_block(channel.id, ids[4], 0)
        assert [bid for bid, _ in positions(service, channel.id)] == [ids[4], ids[0], ids[2], ids[3], ids[1]]
        assert_contiguous(service, channel.id)

    def test_reorder_to_same_position_is_noop(self, service):
        channel = service.create_channel(new_channel())
        a, b = _blocks(service, "A", "B")
        service.connect_block(a.id, channel.id)
        service.connect_block(b.id, channel.id)
        service.reorder_block(channel.id, b.id, 1)
        assert positions(service, channel.id) == [(a.id, 0), (b.id, 1)]

    @pytest.mark.parametrize("new_position", [-1, 2])
    def test_reorder_out_of_range(self, service, new_position):
        channel = service.create_channel(new_channel())
        a, b = _blocks(service, "A", "B")
        service.connect_block(a.id, channel.id)
        service.connect_block(b.id, channel.id)
        with pytest.raises(ValidationError):
            service.reorder_block(channel.id, a.id, new_position)
        assert positions(service, channel.id) == [(a.id, 0), (b.id, 1)]

    def test_reorder_missing_connection(self, service):
        channel = service.create_channel(new_channel())
        (a,) = _blocks(service, "A")
        with pytest.raises(ConnectionNotFoundError):
            service.reorder_block(channel.id, a.id, 0)

    def test_reads_require_existing_entities(self, service):
        with pytest.raises(ChannelNotFoundError):
            service.get_blocks_in_channel("nope")
        with pytest.raises(ChannelNotFoundError):
            service.get_blocks_with_positions("nope")
        with pytest.raises(BlockNotFoundError):
            service.get_channels_for_block("nope")

    def test_channels_for_block_most_recent_first(self, service):
        first = service.create_channel(new_channel("first"))
        second = service.create_channel(new_channel("second"))
        (a,) = _blocks(service, "A")
        service.connect_block(a.id, first.id)
        time.sleep(0.002)
        service.connect_block(a.id, second.id)
        assert [c.id for c in service.get_channels_for_block(a.id)] == [second.id, first.id]
