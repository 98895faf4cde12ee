from __future__ import annotations

import asyncio
import logging

import httpx

from hrms.client import NotificationPoller


def _notification(notification_id: int) -> dict:
    return {"id": notification_id, "title": f"N{notification_id}", "message": "", "type": "general"}


def test_poll_once_delivers_only_new_items_oldest_first():
    batches = [
        [_notification(3), _notification(2)],
        [_notification(4), _notification(3)],
        [],
    ]
    seen_params = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer token-123"
        seen_params.append(dict(request.url.params))
        return httpx.Response(200, json=batches.pop(0))

    received = []

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            poller = NotificationPoller("http://hrms.test/", "token-123", received.append, client=client)
            first = await poller.poll_once()
            second = await poller.poll_once()
            third = await poller.poll_once()
            return poller, first, second, third

    poller, first, second, third = asyncio.run(scenario())

    assert [item["id"] for item in first] == [2, 3]
    assert [item["id"] for item in second] == [4]
    assert third == []
    assert [[item["id"] for item in batch] for batch in received] == [[2, 3], [4]]
    assert poller.last_seen_id == 4
    assert "since_id" not in seen_params[0]
    assert seen_params[1]["since_id"] == "3"
    assert seen_params[2]["since_id"] == "4"


def test_cadence_follows_visibility():
    poller = NotificationPoller("http://hrms.test", "t", lambda items: None)
    assert poller.interval == 3.0
    poller.set_visible(False)
    assert poller.interval == 15.0
    poller.set_visible(True)
    assert poller.interval == 3.0


def test_async_callback_is_awaited():
    delivered = []

    async def on_notifications(items):
        await asyncio.sleep(0)
        delivered.extend(items)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[_notification(1)])

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            poller = NotificationPoller("http://hrms.test", "t", on_notifications, client=client)
            await poller.poll_once()

    asyncio.run(scenario())
    assert [item["id"] for item in delivered] == [1]


def test_failed_poll_is_logged_and_polling_continues(caplog):
    caplog.set_level(logging.WARNING, logger="hrms.client.poller")
    calls = {"count": 0}
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(500, json={"detail": "boom"})
        return httpx.Response(200, json=[_notification(7)])

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            poller = NotificationPoller(
                "http://hrms.test",
                "t",
                received.append,
                client=client,
                visible_interval=0.01,
            )
            poller.start()
            for _ in range(200):
                if received:
                    break
                await asyncio.sleep(0.01)
            await poller.stop()
            return poller

    poller = asyncio.run(scenario())

    assert calls["count"] >= 2
    assert [item["id"] for item in received[0]] == [7]
    assert poller.running is False
    assert "Notification poll failed" in caplog.text
