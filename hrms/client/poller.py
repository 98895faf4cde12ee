"""
Notification poller for API consumers.

Polls ``GET /api/notifications`` on a single asyncio task: every 3 seconds
while the consumer is visible, every 15 seconds while hidden. Only
notifications newer than the last one seen are handed to the callback,
oldest first.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

logger = logging.getLogger(__name__)

VISIBLE_INTERVAL_SECONDS = 3.0
HIDDEN_INTERVAL_SECONDS = 15.0

NotificationCallback = Callable[[list[dict[str, Any]]], Union[None, Awaitable[None]]]


class NotificationPoller:
    def __init__(
        self,
        base_url: str,
        token: str,
        on_notifications: NotificationCallback,
        *,
        client: Optional[httpx.AsyncClient] = None,
        visible_interval: float = VISIBLE_INTERVAL_SECONDS,
        hidden_interval: float = HIDDEN_INTERVAL_SECONDS,
        limit: int = 50,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.on_notifications = on_notifications
        self.visible_interval = visible_interval
        self.hidden_interval = hidden_interval
        self.limit = limit
        self.last_seen_id: Optional[int] = None
        self.visible = True
        self._client = client
        self._owns_client = client is None
        self._task: Optional[asyncio.Task] = None
        self._wake = asyncio.Event()

    @property
    def interval(self) -> float:
        return self.visible_interval if self.visible else self.hidden_interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def set_visible(self, visible: bool) -> None:
        """Switch cadence; becoming visible triggers an immediate poll."""
        became_visible = visible and not self.visible
        self.visible = visible
        if became_visible:
            self._wake.set()

    def start(self) -> None:
        if self.running:
            return
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10)
            self._owns_client = True
        self._task = asyncio.create_task(self._run(), name="notification-poller")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def poll_once(self) -> list[dict[str, Any]]:
        """Fetch once and deliver anything new. Returns the delivered notifications."""
        if self._client is None:
            raise RuntimeError("Poller has no HTTP client; call start() or pass client=")
        params: dict[str, Any] = {"limit": self.limit}
        if self.last_seen_id is not None:
            params["since_id"] = self.last_seen_id
        response = await self._client.get(
            f"{self.base_url}/api/notifications",
            params=params,
            headers={"Authorization": f"Bearer {self.token}"},
        )
        response.raise_for_status()
        items = response.json()

        fresh = sorted(
            (item for item in items if self.last_seen_id is None or item["id"] > self.last_seen_id),
            key=lambda item: item["id"],
        )
        if not fresh:
            return []
        self.last_seen_id = fresh[-1]["id"]
        result = self.on_notifications(fresh)
        if inspect.isawaitable(result):
            await result
        return fresh

    async def _run(self) -> None:
        while True:
            self._wake.clear()
            try:
                await self.poll_once()
            except (httpx.HTTPError, ValueError, KeyError) as exc:
                logger.warning(f"Notification poll failed: {exc}")
            except Exception:
                logger.exception("Notification callback failed")

            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
