"""
MODULE OVERVIEW:
The room registry of the development bridge.

WHAT IS HAPPENING HERE:
Each room maps to the set of WebSockets currently subscribed to it. Two things
ever get sent:
- a `presence` frame to the whole room whenever someone joins or leaves;
- a `gesture` frame to the whole room whenever a classifier publishes one.
A socket that fails to receive is dropped from its room, and the survivors get
a fresh presence count.
"""

from datetime import datetime, timezone
from typing import Dict, Set

from fastapi.websockets import WebSocket
from loguru import logger

from smartteam_live.shared.models import BridgeStats, GestureFrame, PresenceFrame

class RoomHub:
    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.frames_sent = 0
        self.startup_time = datetime.now(timezone.utc)

    async def join(self, room: str, websocket: WebSocket):
        await websocket.accept()
        self.rooms.setdefault(room, set()).add(websocket)
        logger.info(f"room={room} protocol=websocket event=join subscribers={self.count(room)}")
        await self.broadcast_presence(room)

    async def leave(self, room: str, websocket: WebSocket):
        members = self.rooms.get(room)
        if not members or websocket not in members:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room]
        logger.info(f"room={room} protocol=websocket event=leave subscribers={self.count(room)}")
        await self.broadcast_presence(room)

    def count(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    async def broadcast_presence(self, room: str):
        frame = PresenceFrame(subscribers=self.count(room))
        await self._broadcast(room, frame.model_dump_json())

    async def publish_gesture(self, room: str, label: str, confidence: float) -> int:
        """Send a gesture to everyone in `room`. Returns how many sockets got it."""
        frame = GestureFrame(label=label, confidence=confidence)
        return await self._broadcast(room, frame.model_dump_json())

    async def _broadcast(self, room: str, payload: str) -> int:
        delivered = 0
        dead = []
        for ws in list(self.rooms.get(room, ())):
            try:
                await ws.send_text(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"room={room} protocol=websocket event=error reason='{e}'")
                dead.append(ws)
        self.frames_sent += delivered

        members = self.rooms.get(room)
        if dead and members is not None:
            for ws in dead:
                members.discard(ws)
            if not members:
                del self.rooms[room]
            else:
                await self.broadcast_presence(room)
        return delivered

    def get_stats(self) -> BridgeStats:
        return BridgeStats(
            rooms={room: len(members) for room, members in self.rooms.items()},
            total_subscribers=sum(len(m) for m in self.rooms.values()),
            frames_sent=self.frames_sent,
            uptime_s=(datetime.now(timezone.utc) - self.startup_time).total_seconds(),
        )

# Global singleton instance
hub = RoomHub()
