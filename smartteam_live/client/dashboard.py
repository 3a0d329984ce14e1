"""
MODULE OVERVIEW:
The Rich terminal dashboard.

WHAT IS HAPPENING HERE:
The dashboard is just another host of the supervisor: it polls the five read
accessors a few times per second, exactly like a block runtime would, and
renders them. State changes arrive through the supervisor's callback hook and
are kept in a short timeline.
"""
from collections import deque
from datetime import datetime
import asyncio

from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from smartteam_live.client.state import SupervisorEvent, SupervisorState
from smartteam_live.client.supervisor import ConnectionSupervisor

STATE_COLORS = {
    SupervisorState.OPEN: "green",
    SupervisorState.CONNECTING: "yellow",
    SupervisorState.BACKOFF: "yellow",
    SupervisorState.IDLE: "white",
    SupervisorState.DISCONNECTED: "red",
}

class Dashboard:
    def __init__(self, supervisor: ConnectionSupervisor, refresh_s: float = 0.25):
        self.supervisor = supervisor
        self.refresh_s = refresh_s
        self.timeline = deque(maxlen=8)
        self.recent_gestures = deque(maxlen=10)
        self._last_gesture: tuple[str, float] | None = None

    def on_state_change(self, previous: SupervisorState, current: SupervisorState, event: SupervisorEvent):
        ts = datetime.now().strftime("%H:%M:%S")
        self.timeline.appendleft(f"[{ts}] {event.value}: {previous.value} -> {current.value}")

    def _track_gesture(self):
        gesture = (self.supervisor.get_gesture(), self.supervisor.get_confidence())
        if gesture[0] and gesture != self._last_gesture:
            ts = datetime.now().strftime("%H:%M:%S")
            self.recent_gestures.appendleft((ts, gesture[0], f"{gesture[1]:.2f}"))
        self._last_gesture = gesture

    def generate_layout(self) -> Layout:
        sup = self.supervisor
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="facts"),
            Layout(name="timeline")
        )

        color = STATE_COLORS.get(sup.state, "white")
        room = sup.get_room() or "(no room)"
        layout["header"].update(Panel(f"[{color} bold]Room: {room} | State: {sup.state.value} | Connected: {sup.is_connected()}[/]", style=color))

        table = Table(title="Gestures", expand=True)
        table.add_column("Time", justify="left", style="cyan", no_wrap=True)
        table.add_column("Label", style="magenta")
        table.add_column("Confidence", style="green", justify="right")
        for row in self.recent_gestures:
            table.add_row(*row)
        layout["left"].update(Panel(table, title="Feed"))

        facts_text = (
            f"Gesture: {sup.get_gesture() or '-'}\n"
            f"Confidence: {sup.get_confidence():.2f}\n"
            f"Subscribers: {sup.get_subscriber_count():g}"
        )
        layout["facts"].update(Panel(facts_text, title="Facts"))
        layout["timeline"].update(Panel("\n".join(self.timeline), title="Timeline"))
        return layout

    async def run(self, duration_s: float):
        self.supervisor.set_callbacks(self.on_state_change)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_s

        async with self.supervisor:
            with Live(self.generate_layout(), refresh_per_second=4) as live:
                while loop.time() < deadline:
                    self._track_gesture()
                    live.update(self.generate_layout())
                    await asyncio.sleep(self.refresh_s)
