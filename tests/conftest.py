import asyncio

import pytest

from smartteam_live.client.permissions import PermissionChecker
from smartteam_live.client.supervisor import ConnectionSupervisor
from smartteam_live.client.transport import BaseTransport
from smartteam_live.shared.config import Settings
from smartteam_live.shared.models import TransportEventKind

BASE = "wss://bridge.test/ws"


class FakeTransport(BaseTransport):
    """A transport driven by the test: nothing happens until a fire_* call."""

    def __init__(self, url, on_event, start_error=None):
        super().__init__(url, on_event)
        self.start_error = start_error
        self.started = False
        self.closed_with = None
        self.finished = False

    def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    def close(self, code: int = 1000, reason: str = "close") -> None:
        self.closed_with = (code, reason)

    @property
    def live(self) -> bool:
        return self.started and self.closed_with is None and not self.finished

    def fire_open(self):
        self._emit(TransportEventKind.OPEN)

    def fire_message(self, data):
        self._emit(TransportEventKind.MESSAGE, data)

    def fire_error(self):
        self._emit(TransportEventKind.ERROR)

    def fire_close(self):
        self.finished = True
        self._emit(TransportEventKind.CLOSE)


class FakeTransportFactory:
    def __init__(self):
        self.created: list[FakeTransport] = []
        self.start_error: Exception | None = None

    def __call__(self, url, on_event):
        transport = FakeTransport(url, on_event, start_error=self.start_error)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]

    @property
    def live(self) -> list[FakeTransport]:
        return [t for t in self.created if t.live]


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Stands in for loop.call_later; retries only fire when the test says so."""

    def __init__(self):
        self.handles: list[FakeHandle] = []

    def __call__(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def delays(self) -> list[float]:
        return [h.delay for h in self.handles]

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self):
        (handle,) = self.pending
        handle.fired = True
        handle.callback()


class FakePermission(PermissionChecker):
    def __init__(self):
        self.allowed = True
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[str] = []

    async def check(self, url: str) -> bool:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.allowed


class Harness:
    def __init__(self):
        self.transports = FakeTransportFactory()
        self.scheduler = FakeScheduler()
        self.permission = FakePermission()
        self.settings = Settings(WS_BASE="", ROOM="", BACKOFF_MS=[1000, 2000, 3000, 5000])

    def build(self, room: str = "", ws_base: str = BASE, room_source=None) -> ConnectionSupervisor:
        return ConnectionSupervisor(
            room=room,
            ws_base=ws_base,
            settings=self.settings,
            transport_factory=self.transports,
            permission_checker=self.permission,
            room_source=room_source,
            scheduler=self.scheduler,
        )


@pytest.fixture
def harness() -> Harness:
    return Harness()
