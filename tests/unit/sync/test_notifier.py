"""Tests for ChangeNotifier."""

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from pydantic import SecretStr

from taskbrain.config.models.notifications import NotificationConfig
from taskbrain.sync.notifier import ChangeNotifier
from tests.conftest import NOW
from tests.fakes import FakeClock

URL = "https://hooks.example.com/taskbrain"


def response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, text="body", request=httpx.Request("POST", URL))


@pytest.fixture
def client() -> AsyncMock:
    client = AsyncMock(spec=httpx.AsyncClient)
    client.post.return_value = response(200)
    return client


@pytest.fixture
def enabled_notifier(client: AsyncMock, clock: FakeClock) -> ChangeNotifier:
    config = NotificationConfig(url=URL, api_key=SecretStr("notify-key"))
    return ChangeNotifier(config, client=client, clock=clock)


class TestNotify:
    """Fire-and-forget delivery."""

    async def test_disabled_without_url(self, notifier: ChangeNotifier) -> None:
        assert notifier.enabled is False
        assert notifier.notify("item:added", {"id": "1"}) is None

    async def test_payload_and_headers(
        self, enabled_notifier: ChangeNotifier, client: AsyncMock
    ) -> None:
        async def context() -> dict[str, Any]:
            return {"total_active_tasks": 3}

        await enabled_notifier.notify("item:added", {"id": "1"}, context)

        kwargs = client.post.call_args.kwargs
        assert client.post.call_args.args == (URL,)
        assert kwargs["headers"] == {"Content-Type": "application/json", "X-API-Key": "notify-key"}
        assert json.loads(kwargs["content"]) == {
            "event_type": "item:added",
            "event_data": {"id": "1"},
            "timestamp": NOW.isoformat(),
            "context": {"total_active_tasks": 3},
        }

    async def test_no_api_key_header_when_unset(self, client: AsyncMock, clock: FakeClock) -> None:
        notifier = ChangeNotifier(NotificationConfig(url=URL), client=client, clock=clock)

        await notifier.notify("item:added", {})

        assert "X-API-Key" not in client.post.call_args.kwargs["headers"]

    async def test_failing_context_is_sent_empty(
        self, enabled_notifier: ChangeNotifier, client: AsyncMock
    ) -> None:
        async def context() -> dict[str, Any]:
            raise RuntimeError("store down")

        await enabled_notifier.notify("item:added", {}, context)

        assert json.loads(client.post.call_args.kwargs["content"])["context"] == {}

    @pytest.mark.parametrize(
        "side_effect",
        [httpx.ReadTimeout("slow"), httpx.ConnectError("refused")],
    )
    async def test_transport_failures_are_swallowed(
        self,
        enabled_notifier: ChangeNotifier,
        client: AsyncMock,
        side_effect: Exception,
    ) -> None:
        client.post.side_effect = side_effect

        task = enabled_notifier.notify("item:added", {})
        await task

        assert task.exception() is None
        assert client.post.await_count == 1

    async def test_error_status_is_not_retried(
        self, enabled_notifier: ChangeNotifier, client: AsyncMock
    ) -> None:
        client.post.return_value = response(500)

        await enabled_notifier.notify("item:added", {})

        assert client.post.await_count == 1

    async def test_in_flight_tracking(self, enabled_notifier: ChangeNotifier) -> None:
        enabled_notifier.notify("item:added", {})
        enabled_notifier.notify("item:updated", {})
        assert enabled_notifier.in_flight == 2

        await enabled_notifier.drain()
        await asyncio.sleep(0)

        assert enabled_notifier.in_flight == 0


class TestShutdown:
    async def test_cancels_in_flight_deliveries(
        self, enabled_notifier: ChangeNotifier, client: AsyncMock
    ) -> None:
        async def hang(*args: Any, **kwargs: Any) -> httpx.Response:
            await asyncio.Event().wait()
            return response(200)

        client.post.side_effect = hang
        task = enabled_notifier.notify("item:added", {})
        await asyncio.sleep(0)

        await enabled_notifier.shutdown()

        assert task.cancelled()
        assert enabled_notifier.in_flight == 0
        client.aclose.assert_not_awaited()

    async def test_closes_owned_client(self) -> None:
        notifier = ChangeNotifier(NotificationConfig(url=URL))
        owned = notifier._ensure_client()

        await notifier.shutdown()

        assert owned.is_closed
