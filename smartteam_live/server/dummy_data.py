"""
MODULE OVERVIEW:
A fake gesture classifier for the development bridge.

WHAT IS HAPPENING HERE:
In production the gestures come from a camera pipeline. Locally we want
something on the wire without one, so this generator picks a label and a
confidence for every occupied room at a steady pace.
"""

import asyncio
import random
from typing import AsyncGenerator

from smartteam_live.server.room_hub import RoomHub

GESTURES = ["wave", "thumbs_up", "thumbs_down", "open_palm", "fist", "point", "peace"]

async def gesture_generator(hub: RoomHub, interval_s: float = 2.0) -> AsyncGenerator[tuple[str, str, float], None]:
    """Yields (room, label, confidence) for every occupied room, every `interval_s` seconds."""
    while True:
        await asyncio.sleep(interval_s)
        for room in list(hub.rooms):
            label = random.choice(GESTURES)
            confidence = round(random.uniform(0.55, 0.99), 2)
            yield room, label, confidence
