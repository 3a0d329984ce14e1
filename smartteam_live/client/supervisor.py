"""
MODULE OVERVIEW:
The connection supervisor: one room, one transport, one retry timer.

WHAT IS HAPPENING HERE:
The host (a dashboard, a block runtime, a bot) talks to us through three
synchronous commands and five reads:

    set_room(room)  reconnect()  disconnect()
    get_room()  is_connected()  get_gesture()  get_confidence()  get_subscriber_count()

Commands return immediately. The actual work happens on the event loop:

1. A connect attempt builds `<ws_base>?room=<room>`, awaits the permission
   checker, then starts a transport. Any failure along the way schedules a
   retry instead of raising.
2. The transport reports OPEN / MESSAGE / ERROR / CLOSE into our queue. The
   pump task handles them strictly one at a time, in arrival order.
3. CLOSE is the only thing that schedules a retry from a live transport. The
   delays come from the backoff table and saturate at its last entry; a
   successful OPEN starts the table over.

Two guards keep stale work from leaking into a newer session:
- every transport is tagged with an id; events from anything other than the
  current transport are dropped (and torn-down transports are detached first);
- every attempt remembers the session generation it started under, and quietly
  gives up if the generation moved on while it was awaiting permission.
"""
import asyncio
from typing import Any, Callable, Coroutine

from loguru import logger

from smartteam_live.client.interpreter import apply_frame
from smartteam_live.client.permissions import AllowAllPermission, PermissionChecker
from smartteam_live.client.room_source import RoomSource
from smartteam_live.client.state import Session, SupervisorEvent, SupervisorState
from smartteam_live.client.transport import BaseTransport, OnTransportEvent, websocket_transport_factory
from smartteam_live.shared.coerce import round2, to_finite_number
from smartteam_live.shared.config import Settings, settings as default_settings
from smartteam_live.shared.models import FactSet, TransportEvent, TransportEventKind
from smartteam_live.shared.urls import build_ws_url, normalize_room, normalize_ws_base, to_permission_url

TransportFactory = Callable[[str, OnTransportEvent], BaseTransport]
# (delay_s, callback) -> handle with .cancel(); asyncio's loop.call_later by default.
Scheduler = Callable[[float, Callable[[], None]], Any]
StateCallback = Callable[[SupervisorState, SupervisorState, SupervisorEvent], None]

class ConnectionSupervisor:
    def __init__(
        self,
        room: str = "",
        ws_base: str = "",
        *,
        settings: Settings = default_settings,
        transport_factory: TransportFactory = websocket_transport_factory,
        permission_checker: PermissionChecker | None = None,
        room_source: RoomSource | None = None,
        scheduler: Scheduler | None = None,
    ):
        self.settings = settings
        self.session = Session(ws_base=normalize_ws_base(ws_base, settings.DEFAULT_WS_BASE))
        self.facts = FactSet()

        self._initial_room = normalize_room(room)
        self._backoff_s = [ms / 1000.0 for ms in settings.BACKOFF_MS]
        self._transport_factory = transport_factory
        self._permission_checker = permission_checker or AllowAllPermission()
        self._room_source = room_source
        self._scheduler = scheduler

        self._events: asyncio.Queue[TransportEvent] = asyncio.Queue()
        self._pump_task: asyncio.Task | None = None
        self._probe_task: asyncio.Task | None = None
        # Strong references so background tasks are not garbage collected mid-flight.
        self._tasks: set[asyncio.Task] = set()
        self._on_state_change: StateCallback | None = None

    # ==========================
    # LIFECYCLE
    # ==========================
    async def start(self) -> None:
        """Start the event pump and apply the initial room (or start probing for one)."""
        if self._pump_task is not None:
            return
        self._pump_task = asyncio.create_task(self._pump(), name="supervisor-pump")
        self._apply_room(self._initial_room, auto=True)
        if not self._initial_room and self._room_source is not None:
            self._probe_task = self._spawn(self._probe_room(), "room-probe")

    async def aclose(self) -> None:
        """Quiesce (as `disconnect()`) and stop all background tasks."""
        self.disconnect()
        tasks = [t for t in (self._pump_task, *self._tasks) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pump_task = None

    async def __aenter__(self) -> "ConnectionSupervisor":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def settle(self) -> None:
        """Wait for in-flight connect attempts and every queued transport event."""
        while True:
            pending = {t for t in self._tasks if not t.done() and t is not self._probe_task}
            if not pending:
                break
            await asyncio.wait(pending)
        await self._events.join()

    def set_callbacks(self, on_state_change: StateCallback | None) -> None:
        self._on_state_change = on_state_change

    @property
    def state(self) -> SupervisorState:
        return self.session.state

    # ==========================
    # READS
    # ==========================
    def get_room(self) -> str:
        return self.session.room

    def is_connected(self) -> bool:
        return bool(self.facts.connected)

    def get_gesture(self) -> str:
        return self.facts.label or ""

    def get_confidence(self) -> float:
        return round2(to_finite_number(self.facts.confidence, 0.0))

    def get_subscriber_count(self) -> float:
        return to_finite_number(self.facts.subscribers, 0.0)

    # ==========================
    # COMMANDS
    # ==========================
    def set_room(self, new_room: str) -> None:
        self._apply_room(normalize_room(new_room), auto=False)

    def reconnect(self) -> None:
        if not self.session.room:
            self.facts.connected = False
            return
        self._begin_cycle(SupervisorEvent.RECONNECT_REQUESTED, "manual reconnect")

    def disconnect(self) -> None:
        self._stop_room_probe()
        self._cancel_retry()
        self._close_transport("manual disconnect")
        self.session.generation += 1
        self.facts.connected = False
        self._transition(SupervisorEvent.DISCONNECT_REQUESTED, SupervisorState.DISCONNECTED)

    # ==========================
    # ROOM HANDLING
    # ==========================
    def _apply_room(self, room: str, auto: bool) -> None:
        s = self.session
        if not room:
            s.room = ""
            self.facts.connected = False
            # An automatic "no room yet" must not cancel a room that shows up later.
            if not auto:
                self._cancel_retry()
                self._close_transport("room cleared")
                s.generation += 1
                self._transition(SupervisorEvent.ROOM_CLEARED, SupervisorState.IDLE)
            return

        if room == s.room and s.transport is not None:
            return

        self._stop_room_probe()
        s.room = room
        self.facts.reset()
        self._begin_cycle(SupervisorEvent.ROOM_SET, "room changed")

    async def _probe_room(self) -> None:
        room = await self._room_source.resolve()
        self._probe_task = None
        if room and not self.session.room:
            self._apply_room(room, auto=True)

    def _stop_room_probe(self) -> None:
        task = self._probe_task
        self._probe_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # ==========================
    # CONNECT SEQUENCE
    # ==========================
    def _begin_cycle(self, event: SupervisorEvent, reason: str) -> None:
        self._cancel_retry()
        self._close_transport(reason)
        self.session.backoff_index = 0
        self._transition(event, SupervisorState.CONNECTING)
        self._open()

    def _open(self) -> None:
        s = self.session
        if not s.room or not s.should_reconnect:
            self.facts.connected = False
            return
        s.generation += 1
        self._spawn(self._connect(s.generation), "supervisor-connect")

    def _is_stale(self, generation: int) -> bool:
        s = self.session
        return generation != s.generation or s.state != SupervisorState.CONNECTING or not s.room

    def _build_url(self) -> str | None:
        s = self.session
        try:
            return build_ws_url(s.ws_base, s.room)
        except ValueError as e:
            logger.warning(f"room={s.room} event=bad_ws_base reason='{e}' fallback={self.settings.DEFAULT_WS_BASE}")
            s.ws_base = self.settings.DEFAULT_WS_BASE
        try:
            return build_ws_url(s.ws_base, s.room)
        except ValueError as e:
            logger.warning(f"room={s.room} event=bad_ws_base reason='{e}'")
            return None

    async def _connect(self, generation: int) -> None:
        url = self._build_url()
        if url is None:
            self._attempt_failed(generation, "address could not be built")
            return

        permission_url = to_permission_url(url)
        allowed = False
        if permission_url:
            try:
                allowed = bool(await self._permission_checker.check(permission_url))
            except Exception as e:
                logger.warning(f"room={self.session.room} event=permission_error reason='{e}'")
                allowed = False

        if self._is_stale(generation):
            logger.debug(f"room={self.session.room} event=attempt_dropped reason=stale generation={generation}")
            return
        if not allowed:
            self._attempt_failed(generation, "permission denied")
            return

        try:
            self._open_transport(url)
        except Exception as e:
            self._attempt_failed(generation, f"open failed: {e}")
            return
        logger.info(f"room={self.session.room} protocol=websocket event=opening url={url}")

    def _open_transport(self, url: str) -> None:
        s = self.session
        s.transport_id += 1
        transport_id = s.transport_id

        def on_event(kind: TransportEventKind, data: str | bytes | None = None) -> None:
            self._events.put_nowait(TransportEvent(kind, transport_id, data))

        transport = self._transport_factory(url, on_event)
        transport.start()
        s.transport = transport

    def _attempt_failed(self, generation: int, reason: str) -> None:
        if self._is_stale(generation):
            return
        self.facts.connected = False
        logger.warning(f"room={self.session.room} event=connect_failed reason='{reason}'")
        self._schedule_retry(SupervisorEvent.PERMISSION_RESULT)

    # ==========================
    # RETRY / BACKOFF
    # ==========================
    def _schedule_retry(self, event: SupervisorEvent) -> None:
        s = self.session
        if not s.should_reconnect:
            return
        if not s.room:
            self._transition(event, SupervisorState.IDLE)
            return
        if s.retry_handle is not None:
            return

        delay = self._backoff_s[s.advance_backoff(len(self._backoff_s))]
        s.retry_handle = self._call_later(delay, self._on_retry_fired)
        self._transition(event, SupervisorState.BACKOFF)
        logger.info(f"room={s.room} event=retry_scheduled delay_s={delay} next_index={s.backoff_index}")

    def _on_retry_fired(self) -> None:
        s = self.session
        s.retry_handle = None
        if s.transport is not None or s.state != SupervisorState.BACKOFF or not s.room:
            return
        self._transition(SupervisorEvent.RETRY_FIRED, SupervisorState.CONNECTING)
        self._open()

    def _cancel_retry(self) -> None:
        handle = self.session.retry_handle
        self.session.retry_handle = None
        if handle is not None:
            handle.cancel()

    def _call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        if self._scheduler is not None:
            return self._scheduler(delay, callback)
        return asyncio.get_running_loop().call_later(delay, callback)

    # ==========================
    # TRANSPORT
    # ==========================
    def _close_transport(self, reason: str) -> None:
        s = self.session
        transport = s.transport
        if transport is None:
            return
        transport.detach()
        try:
            transport.close(self.settings.CLOSE_CODE, reason)
        except Exception as e:
            logger.debug(f"room={s.room} event=close_error reason='{e}'")
        s.transport = None
        self.facts.connected = False
        logger.info(f"room={s.room} protocol=websocket event=close reason='{reason}'")

    async def _pump(self) -> None:
        while True:
            event = await self._events.get()
            try:
                self._handle_transport_event(event)
            except Exception as e:
                logger.exception(f"event=transport_event_failed kind={event.kind.value} reason='{e}'")
            finally:
                self._events.task_done()

    def _handle_transport_event(self, event: TransportEvent) -> None:
        s = self.session
        if s.transport is None or event.transport_id != s.transport_id:
            logger.debug(f"event=transport_event_dropped kind={event.kind.value} reason=stale_transport")
            return

        if event.kind == TransportEventKind.OPEN:
            if s.state != SupervisorState.CONNECTING:
                logger.debug(f"room={s.room} event=duplicate_open state={s.state.value}")
                return
            self.facts.connected = True
            s.backoff_index = 0
            self._transition(SupervisorEvent.TRANSPORT_OPENED, SupervisorState.OPEN)
        elif event.kind == TransportEventKind.MESSAGE:
            apply_frame(event.data, self.facts)
        elif event.kind == TransportEventKind.ERROR:
            # CLOSE always follows; it alone schedules the retry.
            self.facts.connected = False
        elif event.kind == TransportEventKind.CLOSE:
            self.facts.connected = False
            s.transport = None
            logger.info(f"room={s.room} protocol=websocket event=closed")
            self._schedule_retry(SupervisorEvent.TRANSPORT_CLOSED)

    # ==========================
    # INTERNALS
    # ==========================
    def _transition(self, event: SupervisorEvent, next_state: SupervisorState) -> None:
        previous = self.session.transition(event, next_state)
        if previous != next_state:
            logger.info(f"room={self.session.room} event={event.value} state={previous.value}->{next_state.value}")
        if self._on_state_change is not None:
            try:
                self._on_state_change(previous, next_state, event)
            except Exception:
                logger.opt(exception=True).debug("Suppress state change callback error")

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
