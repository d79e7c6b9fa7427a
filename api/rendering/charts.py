"""Chart rendering adapter.

Chart layout and drawing happen in an external rendering service. This module
only ships the validated chart spec over HTTP and hands back the PNG bytes.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import httpx

from core.logger import get_logger
from rendering.errors import RenderError
from schemas import ChartSpec

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ChartRenderer(Protocol):
    async def render(self, spec: ChartSpec) -> bytes: ...


class HttpChartRenderer:
    """POSTs ``{chart, width, height, backgroundColor}`` to the renderer URL.

    Owns one pooled ``httpx.AsyncClient``, opened on the first render and
    released by ``aclose()`` at application shutdown.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None and not self._client.is_closed:
            return self._client

        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(
                    timeout=self.timeout,
                    limits=httpx.Limits(
                        max_connections=50, max_keepalive_connections=20
                    ),
                    transport=self._transport,
                )
            return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def render(self, spec: ChartSpec) -> bytes:
        if not self.url:
            raise RenderError("Chart renderer is not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                self.url,
                json={
                    "chart": spec.chart,
                    "width": spec.width,
                    "height": spec.height,
                    "backgroundColor": spec.background_color,
                },
            )
        except httpx.HTTPError as e:
            logger.warning("chart.renderer.unreachable", url=self.url, error=str(e))
            raise RenderError(f"Chart renderer unavailable: {e}") from e

        if response.status_code != 200:
            detail = response.text.strip()[:500]
            raise RenderError(
                detail or f"Chart renderer returned HTTP {response.status_code}"
            )
        if not response.content:
            raise RenderError("Chart renderer returned an empty image")
        return response.content
