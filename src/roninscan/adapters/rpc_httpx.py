from __future__ import annotations
import asyncio, logging
from typing import Any

import httpx

from ..domain.errors import ConnectivityError
from .jsonrpc import JsonRpcSource

logger = logging.getLogger(__name__)


class HttpxRPC(JsonRpcSource):
    def __init__(
        self,
        rpc_url: str,
        timeout_s: int = 20,
        max_conn: int = 8,
        *,
        http2: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__()
        self.rpc_url = rpc_url
        self.client = client or httpx.AsyncClient(
            http2=http2,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn//2)),
        )

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        # retry on 429 with simple backoff; any other failure is the caller's problem
        for attempt in range(3):
            try:
                r = await self.client.post(self.rpc_url, json=payload)
            except httpx.TransportError as e:
                raise ConnectivityError(f"{payload['method']}: cannot reach {self.rpc_url}: {e}") from e
            if r.status_code == 429:
                ra = r.headers.get("Retry-After")
                delay = max(1.0, float(ra)) if ra and ra.isdigit() else (1.0 * (2**attempt))
                logger.warning("%s rate limited, retrying in %.1fs", payload["method"], delay)
                await asyncio.sleep(delay); continue
            try:
                r.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ConnectivityError(f"{payload['method']}: HTTP {r.status_code} from {self.rpc_url}") from e
            return r.json()
        raise ConnectivityError(f"Retries exhausted for {payload['method']}")

    async def aclose(self) -> None:
        await self.client.aclose()
