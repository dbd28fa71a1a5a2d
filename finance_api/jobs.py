import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)


class KeepAliveJob:
    """Periodically GET a URL so an idle hosted instance is not put to sleep."""

    def __init__(
        self,
        url: str,
        interval_seconds: float,
        *,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.interval_seconds = interval_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=10.0)
        self._task: asyncio.Task | None = None
        self.pings = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def ping(self) -> None:
        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("keep-alive ping to %s failed", self.url)
            return
        self.pings += 1
        logger.debug("keep-alive ping to %s ok", self.url)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.ping()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info(
            "keep-alive job started: %s every %ss", self.url, self.interval_seconds
        )

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("keep-alive job stopped")
        if self._owns_client:
            await self._client.aclose()
