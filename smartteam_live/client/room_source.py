"""
MODULE OVERVIEW:
Where the initial room comes from.

WHAT IS HAPPENING HERE:
The host that embeds the client may know the room immediately (a CLI flag, an
env var, a page URL it was launched with) or only a little later (a page URL
that settles after start-up, a file another process writes). Both cases look
the same to the supervisor: it awaits `resolve()` and gets either a room or "".

- `StaticRoomSource` reads once.
- `PollingRoomSource` keeps reading at a fixed interval and gives up after a
  bounded number of tries.
"""
from abc import ABC, abstractmethod
import asyncio
from pathlib import Path
from typing import Callable

from loguru import logger

from smartteam_live.shared.urls import normalize_room, room_from_location

class RoomSource(ABC):
    @abstractmethod
    async def resolve(self) -> str:
        pass

class StaticRoomSource(RoomSource):
    def __init__(self, read: Callable[[], str]):
        self._read = read

    @classmethod
    def from_location(cls, location: str) -> "StaticRoomSource":
        return cls(lambda: room_from_location(location))

    async def resolve(self) -> str:
        return _safe_read(self._read)

class PollingRoomSource(RoomSource):
    def __init__(self, read: Callable[[], str], interval_s: float = 0.25, max_tries: int = 20):
        self._read = read
        self.interval_s = interval_s
        self.max_tries = max_tries

    @classmethod
    def from_file(cls, path: Path, interval_s: float = 0.25, max_tries: int = 20) -> "PollingRoomSource":
        """Poll a file holding either a bare room or a page URL with a room parameter."""
        def read() -> str:
            if not path.is_file():
                return ""
            text = path.read_text(encoding="utf-8").strip()
            return room_from_location(text) if "room=" in text else text
        return cls(read, interval_s=interval_s, max_tries=max_tries)

    async def resolve(self) -> str:
        for attempt in range(1, self.max_tries + 1):
            await asyncio.sleep(self.interval_s)
            room = _safe_read(self._read)
            if room:
                logger.info(f"room={room} event=room_found attempt={attempt}")
                return room
        logger.info(f"event=room_probe_exhausted tries={self.max_tries}")
        return ""

def _safe_read(read: Callable[[], str]) -> str:
    try:
        return normalize_room(read())
    except Exception as e:
        logger.debug(f"event=room_read_failed reason='{e}'")
        return ""
