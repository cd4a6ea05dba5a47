from __future__ import annotations
import asyncio, json, logging
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import WebSocketException

from ..domain.errors import ConnectivityError
from .jsonrpc import JsonRpcSource

logger = logging.getLogger(__name__)

Connect = Callable[[str], Awaitable[Any]]


class WebSocketRPC(JsonRpcSource):
    """
    JSON-RPC over one websocket connection, opened lazily on first call.
    Requests are serialized: one in flight at a time.
    """

    def __init__(self, ws_url: str, timeout_s: int = 20, *, connect: Connect | None = None) -> None:
        super().__init__()
        self.ws_url = ws_url
        self.timeout_s = timeout_s
        self._connect = connect or (lambda url: websockets.connect(url, max_size=None))
        self._ws: Any = None
        self._lock = asyncio.Lock()

    async def _connection(self) -> Any:
        if self._ws is None:
            try:
                self._ws = await self._connect(self.ws_url)
            except (OSError, WebSocketException) as e:
                raise ConnectivityError(f"cannot reach {self.ws_url}: {e}") from e
            logger.debug("Connected to %s", self.ws_url)
        return self._ws

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        async with self._lock:
            ws = await self._connection()
            try:
                await ws.send(json.dumps(payload))
                while True:
                    raw = await asyncio.wait_for(ws.recv(), timeout=self.timeout_s)
                    msg = json.loads(raw)
                    if msg.get("id") == payload["id"]:
                        return msg
                    logger.debug("Ignoring unrelated websocket message: %s", str(msg)[:120])
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                await self._drop(ws)
                raise ConnectivityError(f"{payload['method']}: websocket {self.ws_url} failed: {e}") from e

    async def _drop(self, ws: Any) -> None:
        self._ws = None
        try:
            await ws.close()
        except (OSError, WebSocketException) as e:
            logger.debug("Closing broken websocket %s: %s", self.ws_url, e)

    async def aclose(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
