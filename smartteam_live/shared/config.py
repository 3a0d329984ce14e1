"""
MODULE OVERVIEW:
Application-wide configuration using Pydantic Settings.
Both the streaming client and the development bridge read from here.

WHAT IS HAPPENING HERE:
Every timing and every fallback value lives in one place: the compiled-in
default bridge address, the backoff table, the room probe cadence. Any of them
can be overridden from the environment or a `.env` file without touching code
(e.g. `WS_BASE=ws://127.0.0.1:8000/ws ROOM=ST-1234 smartteam-live watch`).
"""
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Stream endpoint
    DEFAULT_WS_BASE: str = "wss://smartteam-gesture-bridge.marianobat.workers.dev/ws"
    WS_BASE: str = ""
    ROOM: str = ""

    # Reconnect policy. The last entry is the cap.
    BACKOFF_MS: list[int] = [1000, 2000, 3000, 5000]
    CLOSE_CODE: int = 1000

    # Room probe (polling room source)
    ROOM_PROBE_INTERVAL_MS: int = 250
    ROOM_PROBE_MAX_TRIES: int = 20

    # Permission gate in front of every open
    PERMISSION_MODE: Literal["allow", "allowlist", "prompt"] = "allow"
    ALLOWED_HOSTS: list[str] = []

    # Dev bridge + dashboard
    DEMO_GESTURE_INTERVAL_S: float = 2.0
    DASHBOARD_REFRESH_S: float = 0.25

    @field_validator("BACKOFF_MS")
    @classmethod
    def _backoff_not_empty(cls, value: list[int]) -> list[int]:
        if not value or any(v < 0 for v in value):
            raise ValueError("BACKOFF_MS needs at least one non-negative delay")
        return value

    class Config:
        env_file = ".env"
        # Tolerate missing env vars to allow easy out-of-the-box execution
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()
