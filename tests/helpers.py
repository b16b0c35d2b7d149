"""Small builders shared by the test modules."""
from garden.db import schemas


def text_block(body: str = "Hello, world!", **archive) -> schemas.NewBlock:
    return schemas.NewBlock(content=schemas.TextContent(body=body), **archive)


def new_channel(title: str = "Inspiration", description=None) -> schemas.NewChannel:
    return schemas.NewChannel(title=title, description=description)


def positions(service, channel_id: str) -> list:
    """``[(block_id, position), ...]`` ascending by position."""
    return [(b.id, p) for b, p in service.get_blocks_with_positions(channel_id)]


def assert_contiguous(service, channel_id: str) -> None:
    got = [p for _, p in service.get_blocks_with_positions(channel_id)]
    assert got == list(range(len(got)))
