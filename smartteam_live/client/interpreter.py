"""
MODULE OVERVIEW:
The inbound frame interpreter.

WHAT IS HAPPENING HERE:
Every frame the stream delivers goes through `apply_frame()`. We decode it,
check it is a JSON object, and dispatch on its `type`. Two kinds are understood
(`gesture`, `presence`); everything else, including frames that are not JSON at
all, is dropped on the floor without touching state. Nothing in here raises and
nothing in here knows about the connection: it only ever writes to the FactSet.
"""
import json
from typing import Any

from loguru import logger
from pydantic import ValidationError

from smartteam_live.shared.models import FactSet, GestureFrame, PresenceFrame

def decode_frame(raw: str | bytes | None) -> dict[str, Any] | None:
    """Parse a raw frame. Returns None unless it decodes to a JSON object."""
    if raw is None:
        return None
    try:
        msg = json.loads(raw)
    except (ValueError, TypeError):
        return None
    return msg if isinstance(msg, dict) else None

def apply_frame(raw: str | bytes | None, facts: FactSet) -> bool:
    """Update `facts` from one inbound frame. Returns True if the frame was used."""
    msg = decode_frame(raw)
    if msg is None:
        logger.debug(f"event=frame_dropped reason=not_a_json_object size={len(raw or '')}")
        return False

    kind = msg.get("type")
    try:
        if kind == "gesture":
            gesture = GestureFrame.model_validate(msg)
            facts.label = gesture.label
            facts.confidence = gesture.confidence
            return True
        if kind == "presence":
            presence = PresenceFrame.model_validate(msg)
            if presence.subscribers is not None:
                facts.subscribers = presence.subscribers
            return True
    except ValidationError as e:
        logger.debug(f"event=frame_dropped reason=invalid_shape type={kind} errors={e.error_count()}")
        return False

    logger.debug(f"event=frame_dropped reason=unknown_type type={kind!r}")
    return False
