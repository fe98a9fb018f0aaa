"""
HTTP key-value remote store.

Endpoints (relative to `{base_url}/api`):
  GET  /kv          -> {"status": "success", "data": {key: value, ...}}
  PUT  /kv          <- {"items": {key: value, ...}}
  POST /kv/delete   <- {"keys": [key, ...]}

Change notifications are not part of the HTTP API; pass a
RemoteChangeListener to receive them over Socket.IO.
"""

import logging
from typing import Any, Callable, Optional

import httpx

from tabber.errors import RemoteStoreError
from tabber.providers import RemoteChangeHandler, RemoteStore
from tabber.transport.socketio import RemoteChangeListener

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8765"


class HttpRemoteStore(RemoteStore):
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        changes: Optional[RemoteChangeListener] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._changes = changes
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            headers={"User-Agent": "tabber/0.1.0", "Accept": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _unwrap(json_data: Any) -> Any:
        """Unwrap the standard response: { "status": "success", "data": <actual_data> }"""
        if isinstance(json_data, dict) and "status" in json_data and "data" in json_data:
            return json_data["data"]
        return json_data

    async def _request(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        try:
            resp = await self._client.request(method, path, json=body, headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {path} failed: {e}")
        if resp.status_code >= 400:
            raise RemoteStoreError(
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                details={"status_code": resp.status_code},
            )
        if not resp.content:
            return None
        return self._unwrap(resp.json())

    async def get_all(self) -> dict[str, Any]:
        data = await self._request("GET", "/kv")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise RemoteStoreError(f"Unexpected store contents: {type(data).__name__}")
        return data

    async def set_all(self, record: dict[str, Any]) -> None:
        await self._request("PUT", "/kv", {"items": record})

    async def remove(self, keys: list[str]) -> None:
        if keys:
            await self._request("POST", "/kv/delete", {"keys": list(keys)})

    def add_listener(self, handler: RemoteChangeHandler) -> Callable[[], None]:
        if self._changes is None:
            logger.debug("No change feed configured; remote changes will not be reported")
            return lambda: None
        return self._changes.add_handler(handler)

    async def close(self) -> None:
        await self._client.aclose()
