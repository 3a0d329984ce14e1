"""
MODULE OVERVIEW:
Data structures shared by the streaming client and the development bridge.

WHAT IS HAPPENING HERE:
The wire frames are Pydantic v2 models so the bridge can emit them and the
client can validate them with the same definitions. The client side is
forgiving: the before-validators coerce junk into the documented
defaults instead of raising, so one malformed field never drops the
whole frame. `FactSet` and `TransportEvent` are plain dataclasses; they never
cross the wire.
"""
import enum
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

from smartteam_live.shared.coerce import to_finite_number

# WHAT IS HAPPENING HERE:
# A classifier result broadcast to everyone in the room.
# {"type": "gesture", "label": "wave", "confidence": 0.87}
class GestureFrame(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["gesture"] = "gesture"
    label: str = ""
    confidence: float = 0.0

    @field_validator("label", mode="before")
    @classmethod
    def _label_or_empty(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("confidence", mode="before")
    @classmethod
    def _finite_confidence(cls, value: Any) -> float:
        return to_finite_number(value, 0.0)

# WHAT IS HAPPENING HERE:
# The bridge tells every room member how many subscribers the room has.
# A missing or non-finite count is kept as None so the reader can hold on
# to the last good value.
class PresenceFrame(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["presence"] = "presence"
    subscribers: float | None = None

    @field_validator("subscribers", mode="before")
    @classmethod
    def _finite_or_none(cls, value: Any) -> float | None:
        return to_finite_number(value, None)

# Body of POST /rooms/{room}/gesture on the dev bridge.
class GesturePublish(BaseModel):
    label: str
    confidence: float = 1.0

class BridgeStats(BaseModel):
    rooms: dict[str, int]
    total_subscribers: int
    frames_sent: int
    uptime_s: float

@dataclass
class FactSet:
    """Last observed values for the current room."""
    connected: bool = False
    label: str = ""
    confidence: float = 0.0
    subscribers: float = 0.0

    def reset(self) -> None:
        self.connected = False
        self.label = ""
        self.confidence = 0.0
        self.subscribers = 0.0

class TransportEventKind(str, enum.Enum):
    OPEN = "open"
    MESSAGE = "message"
    ERROR = "error"
    CLOSE = "close"

@dataclass(frozen=True)
class TransportEvent:
    kind: TransportEventKind
    transport_id: int
    data: str | bytes | None = None
