"""
CLI entrypoint for SmartTEAM Live.
"""
from pathlib import Path
import asyncio
import sys

import typer
from loguru import logger

from smartteam_live.client.dashboard import Dashboard
from smartteam_live.client.permissions import build_permission_checker
from smartteam_live.client.room_source import PollingRoomSource, RoomSource, StaticRoomSource
from smartteam_live.client.supervisor import ConnectionSupervisor
from smartteam_live.shared.config import settings

app = typer.Typer(help="SmartTEAM Live: follow a gesture room from the terminal")

def _configure_logging(log_file: Path | None = None, stderr_level: str | None = None):
    logger.remove()
    if log_file is not None:
        logger.add(log_file, level=settings.LOG_LEVEL)
    else:
        logger.add(sys.stderr, level=stderr_level or settings.LOG_LEVEL)

def _pick_room_source(page_url: str | None, room_file: Path | None) -> RoomSource | None:
    if page_url:
        return StaticRoomSource.from_location(page_url)
    if room_file is not None:
        return PollingRoomSource.from_file(
            room_file,
            interval_s=settings.ROOM_PROBE_INTERVAL_MS / 1000.0,
            max_tries=settings.ROOM_PROBE_MAX_TRIES,
        )
    return None

@app.command()
def watch(
    room: str = typer.Option(settings.ROOM, help="Room to join, e.g. ST-XXXXXXX"),
    ws_base: str = typer.Option(settings.WS_BASE, help="Stream base address (ws:// or wss://)"),
    page_url: str = typer.Option(None, help="Hosting page URL carrying ?room=... (read once)"),
    room_file: Path = typer.Option(None, help="File to poll for the room until it appears"),
    duration: float = typer.Option(3600.0, help="How long to watch, in seconds"),
    log_file: Path = typer.Option(None, help="Write logs here instead of hiding them"),
):
    """Join a room and show the live facts in a dashboard."""
    # The dashboard owns the terminal, so stderr only gets errors.
    _configure_logging(log_file, stderr_level="ERROR")
    supervisor = ConnectionSupervisor(
        room=room,
        ws_base=ws_base,
        settings=settings,
        permission_checker=build_permission_checker(settings),
        room_source=_pick_room_source(page_url, room_file),
    )
    dashboard = Dashboard(supervisor, refresh_s=settings.DASHBOARD_REFRESH_S)
    try:
        asyncio.run(dashboard.run(duration))
    except KeyboardInterrupt:
        pass

@app.command()
def server(port: int = typer.Option(settings.PORT, help="Port to listen on")):
    """Start the development bridge using Uvicorn."""
    import uvicorn
    _configure_logging()
    typer.echo(f"Starting dev bridge on port {port}...")
    uvicorn.run("smartteam_live.server.main:app", host="0.0.0.0", port=port, log_level=settings.LOG_LEVEL.lower())

@app.command()
def publish(
    room: str = typer.Argument(..., help="Room to publish into"),
    label: str = typer.Argument(..., help="Gesture label"),
    confidence: float = typer.Option(1.0, help="Classifier confidence"),
    bridge: str = typer.Option(f"http://127.0.0.1:{settings.PORT}", help="Dev bridge HTTP address"),
):
    """Publish one gesture to a room on the dev bridge."""
    import httpx
    resp = httpx.post(f"{bridge.rstrip('/')}/rooms/{room}/gesture", json={"label": label, "confidence": confidence})
    resp.raise_for_status()
    typer.echo(resp.json())

@app.command()
def stats(bridge: str = typer.Option(f"http://127.0.0.1:{settings.PORT}", help="Dev bridge HTTP address")):
    """Query the dev bridge for room occupancy."""
    import httpx
    resp = httpx.get(f"{bridge.rstrip('/')}/stats")
    typer.echo(resp.json())

if __name__ == "__main__":
    app()
