"""
MODULE OVERVIEW:
The room stream endpoint: `GET /ws?room=<room>` upgraded to a WebSocket.

WHAT IS HAPPENING HERE:
The socket joins its room and then just sits there reading. Subscribers never
send anything meaningful, so whatever arrives is logged and discarded; the read
loop only exists to notice the disconnect.
"""
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from loguru import logger

from smartteam_live.server.room_hub import hub
from smartteam_live.shared.urls import normalize_room

router = APIRouter()

@router.websocket("/ws")
async def room_stream(websocket: WebSocket, room: str = Query("")):
    room = normalize_room(room)
    if not room:
        await websocket.close(code=1008, reason="room is required")
        return

    await hub.join(room, websocket)
    try:
        while True:
            text_data = await websocket.receive_text()
            logger.debug(f"room={room} protocol=websocket event=ignored_inbound size={len(text_data)}")
    except WebSocketDisconnect:
        pass
    finally:
        await hub.leave(room, websocket)
