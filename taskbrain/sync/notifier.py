"""Outward change notifications.

Deliveries are fire-and-forget: each runs as a tracked asyncio task,
bounded by a semaphore, and is cancelled on shutdown. Failures are logged
and counted; nothing is retried.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import httpx

from taskbrain.config.models.notifications import NotificationConfig
from taskbrain.observability.logging import get_logger
from taskbrain.observability.metrics import NOTIFICATIONS
from taskbrain.tasks.models import utc_now

logger = get_logger(__name__)

ContextProvider = Callable[[], Awaitable[dict[str, Any]]]


class ChangeNotifier:
    """Dispatch change notifications to the configured endpoint."""

    def __init__(
        self,
        config: NotificationConfig,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._semaphore = asyncio.Semaphore(config.max_concurrency)
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self._config.url)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self._config.read_timeout,
                    connect=self._config.connect_timeout,
                )
            )
        return self._client

    def notify(
        self,
        event_type: str,
        event_data: dict[str, Any],
        context: ContextProvider | None = None,
    ) -> asyncio.Task[None] | None:
        """Schedule a delivery and return immediately.

        Returns the scheduled task, or None when notifications are disabled.
        """
        if not self.enabled:
            return None
        task = asyncio.create_task(self._deliver(event_type, event_data, context))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _gather_context(self, context: ContextProvider | None) -> dict[str, Any]:
        if context is None:
            return {}
        try:
            return await context()
        except Exception as e:
            logger.error("notification_context_failed", error=str(e))
            return {}

    async def _deliver(
        self,
        event_type: str,
        event_data: dict[str, Any],
        context: ContextProvider | None,
    ) -> None:
        async with self._semaphore:
            payload = {
                "event_type": event_type,
                "event_data": event_data,
                "timestamp": self._clock().isoformat(),
                "context": await self._gather_context(context),
            }
            headers = {"Content-Type": "application/json"}
            if self._config.api_key is not None:
                headers["X-API-Key"] = self._config.api_key.get_secret_value()

            try:
                response = await self._ensure_client().post(
                    self._config.url,
                    content=json.dumps(payload, default=str),
                    headers=headers,
                )
            except httpx.TimeoutException:
                NOTIFICATIONS.labels(outcome="timeout").inc()
                logger.warning("notification_timeout", event_type=event_type)
                return
            except httpx.HTTPError as e:
                NOTIFICATIONS.labels(outcome="error").inc()
                logger.error("notification_http_error", event_type=event_type, error=str(e))
                return

            if response.status_code >= 300:
                NOTIFICATIONS.labels(outcome="rejected").inc()
                logger.error(
                    "notification_rejected",
                    event_type=event_type,
                    status_code=response.status_code,
                    response_preview=response.text[:200],
                )
                return

            NOTIFICATIONS.labels(outcome="delivered").inc()
            logger.info("notification_delivered", event_type=event_type)

    async def drain(self) -> None:
        """Wait for in-flight deliveries to finish."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel in-flight deliveries and close the HTTP client."""
        pending = list(self._in_flight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info("notifications_cancelled", count=len(pending))
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
