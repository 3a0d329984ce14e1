"""
MODULE OVERVIEW:
Permission collaborators consulted before every transport open.

WHAT IS HAPPENING HERE:
The supervisor never decides on its own whether it may reach an address. It
hands the http/https twin of the stream address to a `PermissionChecker` and
awaits the answer. A denial or an exception both count as a failed attempt
on the supervisor side, so checkers are free to raise.
"""
from abc import ABC, abstractmethod
import asyncio

import httpx
import typer
from loguru import logger

from smartteam_live.shared.config import Settings

class PermissionChecker(ABC):
    @abstractmethod
    async def check(self, url: str) -> bool:
        pass

class AllowAllPermission(PermissionChecker):
    async def check(self, url: str) -> bool:
        return bool(url)

class HostAllowlistPermission(PermissionChecker):
    def __init__(self, hosts: list[str]):
        self.hosts = {h.strip().lower() for h in hosts if h.strip()}

    async def check(self, url: str) -> bool:
        host = httpx.URL(url).host.lower()
        allowed = host in self.hosts
        if not allowed:
            logger.warning(f"host={host} event=permission_denied reason=not_in_allowlist")
        return allowed

class PromptPermission(PermissionChecker):
    """Ask on the terminal, once per origin."""

    def __init__(self):
        self._answers: dict[str, bool] = {}
        self._lock = asyncio.Lock()

    async def check(self, url: str) -> bool:
        parsed = httpx.URL(url)
        origin = f"{parsed.scheme}://{parsed.netloc.decode('ascii')}"
        async with self._lock:
            if origin not in self._answers:
                # typer.confirm blocks on stdin; keep it off the event loop.
                self._answers[origin] = await asyncio.to_thread(
                    typer.confirm, f"Allow connecting to {origin}?", default=False
                )
        return self._answers[origin]

def build_permission_checker(settings: Settings) -> PermissionChecker:
    if settings.PERMISSION_MODE == "allowlist":
        return HostAllowlistPermission(settings.ALLOWED_HOSTS)
    if settings.PERMISSION_MODE == "prompt":
        return PromptPermission()
    return AllowAllPermission()
