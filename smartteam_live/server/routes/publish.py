"""
MODULE OVERVIEW:
HTTP side door for classifiers: `POST /rooms/{room}/gesture`.

WHAT IS HAPPENING HERE:
Whatever produces gestures (a camera pipeline, a test script, the `publish`
CLI command) does not need a WebSocket of its own. It posts a label and a
confidence, and the hub fans the frame out to the room.
"""
from fastapi import APIRouter, HTTPException

from smartteam_live.server.room_hub import hub
from smartteam_live.shared.models import GesturePublish
from smartteam_live.shared.urls import normalize_room

router = APIRouter()

@router.post("/rooms/{room}/gesture")
async def publish_gesture(room: str, body: GesturePublish):
    room = normalize_room(room)
    if not room:
        raise HTTPException(status_code=422, detail="room is required")
    delivered = await hub.publish_gesture(room, body.label, body.confidence)
    return {"room": room, "delivered": delivered}

@router.get("/rooms/{room}")
async def room_presence(room: str):
    room = normalize_room(room)
    return {"room": room, "subscribers": hub.count(room)}
