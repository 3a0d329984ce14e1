"""
MODULE OVERVIEW:
The FastAPI application for the development bridge.

WHAT IS HAPPENING HERE:
The bridge speaks the same protocol as the hosted one: subscribers connect to
`/ws?room=...`, receive `presence` frames as people come and go and `gesture`
frames as classifiers publish. The `lifespan` context starts the fake
classifier (unless DEMO_GESTURE_INTERVAL_S is 0) and cancels it on shutdown.
"""

from contextlib import asynccontextmanager
import asyncio

from fastapi import FastAPI
from loguru import logger

from smartteam_live.server.dummy_data import gesture_generator
from smartteam_live.server.room_hub import hub
from smartteam_live.server.routes import publish, stream
from smartteam_live.shared.config import settings

# We store our background tasks here so we can cancel them on shutdown.
background_tasks = set()

async def demo_runner(interval_s: float):
    """Consumes the fake classifier and publishes into the hub."""
    try:
        async for room, label, confidence in gesture_generator(hub, interval_s):
            await hub.publish_gesture(room, label, confidence)
    except asyncio.CancelledError:
        logger.debug("Demo gesture generator cancelled")
    except Exception as e:
        logger.error(f"Demo gesture generator error: {e}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # STARTUP
    logger.info("SmartTEAM dev bridge starting up...")
    if settings.DEMO_GESTURE_INTERVAL_S > 0:
        task = asyncio.create_task(demo_runner(settings.DEMO_GESTURE_INTERVAL_S))
        background_tasks.add(task)
        logger.info(f"Demo gestures every {settings.DEMO_GESTURE_INTERVAL_S}s.")

    yield

    # SHUTDOWN
    logger.info("Bridge shutting down. Cancelling background tasks...")
    for task in background_tasks:
        task.cancel()
    if background_tasks:
        await asyncio.gather(*background_tasks, return_exceptions=True)
    background_tasks.clear()
    logger.info("Shutdown complete.")


app = FastAPI(
    title="SmartTEAM Live dev bridge",
    description="Local stand-in for the hosted gesture bridge",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(stream.router, tags=["Stream"])
app.include_router(publish.router, tags=["Publish"])

@app.get("/healthz", tags=["Ops"])
async def health_check():
    return {"status": "ok"}

@app.get("/stats", tags=["Ops"])
async def get_stats():
    return hub.get_stats()
