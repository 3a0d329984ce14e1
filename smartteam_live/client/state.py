"""
MODULE OVERVIEW:
The explicit connection state machine behind the supervisor.

WHAT IS HAPPENING HERE:
Instead of inferring "are we trying to connect?" from a pile of booleans and
nullable handles, the session carries one `SupervisorState`. Every change goes
through `Session.transition()`, which checks it against the allowed table and
records which named event caused it. Whether we still *want* a connection (the
intent flag) is derived from the state.

    IDLE ──RoomSet──▶ CONNECTING ──TransportOpened──▶ OPEN
                          │  ▲                          │
     PermissionResult(no) │  │ RetryFired               │ TransportClosed
     TransportClosed      ▼  │                          ▼
                        BACKOFF ◀───────────────────────┘

    any ──DisconnectRequested──▶ DISCONNECTED      any ──RoomCleared──▶ IDLE
"""
import enum
from dataclasses import dataclass
from typing import Any

class SupervisorState(str, enum.Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    BACKOFF = "BACKOFF"
    DISCONNECTED = "DISCONNECTED"

class SupervisorEvent(str, enum.Enum):
    ROOM_SET = "RoomSet"
    ROOM_CLEARED = "RoomCleared"
    RECONNECT_REQUESTED = "ReconnectRequested"
    PERMISSION_RESULT = "PermissionResult"
    TRANSPORT_OPENED = "TransportOpened"
    TRANSPORT_CLOSED = "TransportClosed"
    RETRY_FIRED = "RetryFired"
    DISCONNECT_REQUESTED = "DisconnectRequested"

class IllegalTransition(RuntimeError):
    """Raised when the supervisor attempts a transition the table forbids."""

_ALLOWED: dict[SupervisorState, set[SupervisorState]] = {
    SupervisorState.IDLE: {
        SupervisorState.IDLE,
        SupervisorState.CONNECTING,
        SupervisorState.DISCONNECTED,
    },
    SupervisorState.CONNECTING: {
        SupervisorState.CONNECTING,
        SupervisorState.OPEN,
        SupervisorState.BACKOFF,
        SupervisorState.IDLE,
        SupervisorState.DISCONNECTED,
    },
    SupervisorState.OPEN: {
        SupervisorState.CONNECTING,
        SupervisorState.BACKOFF,
        SupervisorState.IDLE,
        SupervisorState.DISCONNECTED,
    },
    SupervisorState.BACKOFF: {
        SupervisorState.CONNECTING,
        SupervisorState.IDLE,
        SupervisorState.DISCONNECTED,
    },
    SupervisorState.DISCONNECTED: {
        SupervisorState.CONNECTING,
        SupervisorState.IDLE,
        SupervisorState.DISCONNECTED,
    },
}

# States in which the supervisor keeps trying to hold a connection.
_INTENT_STATES = {SupervisorState.CONNECTING, SupervisorState.OPEN, SupervisorState.BACKOFF}

@dataclass
class Session:
    """The single mutable subscription context."""

    ws_base: str
    room: str = ""
    state: SupervisorState = SupervisorState.IDLE
    backoff_index: int = 0
    retry_handle: Any = None
    transport: Any = None
    transport_id: int = 0
    # Bumped on every teardown; attempts started under an older value are stale.
    generation: int = 0
    last_event: SupervisorEvent | None = None

    @property
    def should_reconnect(self) -> bool:
        return self.state in _INTENT_STATES

    def transition(self, event: SupervisorEvent, next_state: SupervisorState) -> SupervisorState:
        """Move to `next_state` because of `event`. Returns the previous state."""
        if next_state not in _ALLOWED[self.state]:
            raise IllegalTransition(f"{self.state.value} -[{event.value}]-> {next_state.value}")
        previous = self.state
        self.state = next_state
        self.last_event = event
        return previous

    def advance_backoff(self, table_len: int) -> int:
        """Return the current backoff index, then step it (saturating at the last entry)."""
        last = max(table_len - 1, 0)
        idx = min(self.backoff_index, last)
        self.backoff_index = min(self.backoff_index + 1, last)
        return idx
