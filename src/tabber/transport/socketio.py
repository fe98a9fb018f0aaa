"""
Socket.IO change feed for the remote store.

The server is reached at {base_url}/api/socket.io/ (auth `{"token": ...}`)
and signals `ready` once the session is attached. After that it emits
`storage:changed` with `{"changes": {key: {"newValue": value}}}` whenever
another device writes to the store; each payload is handed to every
registered handler.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

import socketio

from tabber.providers import RemoteChangeHandler

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/api/socket.io/"
READY_EVENT = "ready"
CHANGE_EVENT = "storage:changed"


class RemoteChangeListener:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
    ):
        self._url = base_url.rstrip("/")
        self._auth = {"token": token} if token else None
        self._transports = list(transports or ["websocket"])
        self._ready_timeout = ready_timeout
        self._client: Optional[socketio.AsyncClient] = None
        self._ready = asyncio.Event()
        self._handlers: list[RemoteChangeHandler] = []

    @property
    def connected(self) -> bool:
        return self._client is not None and self._client.connected and self._ready.is_set()

    def add_handler(self, handler: RemoteChangeHandler) -> Callable[[], None]:
        """Register a change handler. Returns a function that unregisters it."""
        self._handlers.append(handler)

        def remove() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)
        return remove

    def _on_change(self, data: Any) -> None:
        changes = data.get("changes") if isinstance(data, dict) else None
        if not isinstance(changes, dict):
            logger.warning(f"Ignoring malformed {CHANGE_EVENT} payload: {data!r}")
            return
        logger.debug("Remote change for keys %s", sorted(changes))
        for handler in list(self._handlers):
            handler(changes)

    def _build_client(self) -> socketio.AsyncClient:
        client = socketio.AsyncClient()

        async def on_ready(*_args: Any) -> None:
            self._ready.set()

        async def on_change(data: Any) -> None:
            self._on_change(data)

        async def on_disconnect(*_args: Any) -> None:
            logger.info("Change feed disconnected")
            self._ready.clear()

        client.on(READY_EVENT, on_ready)
        client.on(CHANGE_EVENT, on_change)
        client.on("disconnect", on_disconnect)
        return client

    async def connect(self) -> None:
        """Open the feed and wait until the server reports `ready`."""
        if self.connected:
            return
        self._ready.clear()
        self._client = self._build_client()
        await self._client.connect(
            self._url,
            auth=self._auth,
            transports=self._transports,
            socketio_path=SOCKETIO_PATH,
        )
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self.disconnect()
            raise TimeoutError(f"No '{READY_EVENT}' from {self._url} within {self._ready_timeout}s")

    async def disconnect(self) -> None:
        self._ready.clear()
        client, self._client = self._client, None
        if client is not None:
            await client.disconnect()
