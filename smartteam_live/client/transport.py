"""
MODULE OVERVIEW:
The transport layer under the connection supervisor.

WHAT IS HAPPENING HERE:
A transport is a one-shot connection attempt. It is created for one address,
started once, and reports everything that happens to it as a
`TransportEventKind` through a single `on_event` hook:

    OPEN -> MESSAGE* -> [ERROR] -> CLOSE

CLOSE is always the last event, whatever went wrong. The supervisor turns each
report into a queued `TransportEvent`, so the transport itself never touches
supervisor state. `detach()` cuts the hook; after that the transport can still
finish closing in the background but nobody hears about it.

`WebSocketTransport` is the real implementation on top of the `websockets`
library. Tests plug in their own subclass of `BaseTransport`.
"""
from abc import ABC, abstractmethod
import asyncio
from typing import Callable

import websockets
from websockets.exceptions import ConnectionClosedOK
from websockets.uri import parse_uri
from loguru import logger

from smartteam_live.shared.models import TransportEventKind

OnTransportEvent = Callable[[TransportEventKind, str | bytes | None], None]

class BaseTransport(ABC):
    def __init__(self, url: str, on_event: OnTransportEvent):
        self.url = url
        self._on_event: OnTransportEvent | None = on_event

    @property
    def attached(self) -> bool:
        return self._on_event is not None

    def detach(self) -> None:
        """Stop reporting events. Idempotent."""
        self._on_event = None

    def _emit(self, kind: TransportEventKind, data: str | bytes | None = None) -> None:
        if self._on_event is not None:
            self._on_event(kind, data)

    @abstractmethod
    def start(self) -> None:
        """Begin connecting. May raise synchronously if the address is rejected."""
        pass

    @abstractmethod
    def close(self, code: int = 1000, reason: str = "close") -> None:
        pass

class WebSocketTransport(BaseTransport):
    def __init__(self, url: str, on_event: OnTransportEvent):
        super().__init__(url, on_event)
        self._ws = None
        self._task: asyncio.Task | None = None
        self._closer: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is not None:
            return
        # Raises websockets.exceptions.InvalidURI before any task exists.
        parse_uri(self.url)
        self._task = asyncio.create_task(self._run(), name=f"ws-transport {self.url}")

    def close(self, code: int = 1000, reason: str = "close") -> None:
        ws = self._ws
        if ws is not None:
            self._closer = asyncio.create_task(ws.close(code=code, reason=reason))
        elif self._task is not None and not self._task.done():
            # Still in the opening handshake: nothing to close gracefully.
            self._task.cancel()

    async def _run(self) -> None:
        try:
            # No open_timeout: a silent endpoint keeps the slot until it errors or closes.
            async with websockets.connect(self.url, open_timeout=None) as ws:
                self._ws = ws
                self._emit(TransportEventKind.OPEN)
                async for message in ws:
                    self._emit(TransportEventKind.MESSAGE, message)
        except ConnectionClosedOK:
            pass
        except Exception as e:
            logger.warning(f"url={self.url} protocol=websocket event=error reason='{e}'")
            self._emit(TransportEventKind.ERROR)
        finally:
            self._ws = None
            self._emit(TransportEventKind.CLOSE)

def websocket_transport_factory(url: str, on_event: OnTransportEvent) -> BaseTransport:
    return WebSocketTransport(url, on_event)
