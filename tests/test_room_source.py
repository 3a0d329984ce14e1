import pytest

from smartteam_live.client.room_source import PollingRoomSource, StaticRoomSource


@pytest.mark.asyncio
async def test_static_source_reads_once():
    calls = []

    def read():
        calls.append(1)
        return "  ST-1 "

    assert await StaticRoomSource(read).resolve() == "ST-1"
    assert calls == [1]


@pytest.mark.asyncio
async def test_static_source_from_location():
    source = StaticRoomSource.from_location("https://turbowarp.org/editor#?room=ST-2")
    assert await source.resolve() == "ST-2"


@pytest.mark.asyncio
async def test_static_source_swallows_reader_errors():
    def read():
        raise OSError("gone")

    assert await StaticRoomSource(read).resolve() == ""


@pytest.mark.asyncio
async def test_polling_source_returns_first_non_empty_read():
    reads = iter(["", " ", "ST-3", "ST-4"])
    source = PollingRoomSource(lambda: next(reads), interval_s=0, max_tries=10)
    assert await source.resolve() == "ST-3"


@pytest.mark.asyncio
async def test_polling_source_gives_up_after_max_tries():
    calls = []

    def read():
        calls.append(1)
        return ""

    source = PollingRoomSource(read, interval_s=0, max_tries=4)
    assert await source.resolve() == ""
    assert len(calls) == 4


@pytest.mark.asyncio
async def test_polling_source_from_file(tmp_path):
    path = tmp_path / "room.txt"
    path.write_text("https://turbowarp.org/editor?room=ST-5\n", encoding="utf-8")
    source = PollingRoomSource.from_file(path, interval_s=0, max_tries=2)
    assert await source.resolve() == "ST-5"

    path.write_text("ST-6", encoding="utf-8")
    assert await source.resolve() == "ST-6"


@pytest.mark.asyncio
async def test_polling_source_from_missing_file(tmp_path):
    source = PollingRoomSource.from_file(tmp_path / "nope.txt", interval_s=0, max_tries=2)
    assert await source.resolve() == ""
