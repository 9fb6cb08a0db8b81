"""Tests for best-effort alert dispatch."""

import json
import logging

import httpx
import pytest

from homesoc.alerts.dispatcher import AlertDispatcher, WebhookNotifier, render_alert
from homesoc.errors import DispatchError
from homesoc.network.models import AnomalyEvent, AnomalyType

WEBHOOK_URL = "https://discord.example/api/webhooks/1/token"


def _event() -> AnomalyEvent:
    return AnomalyEvent.of(
        AnomalyType.CONNECTION_SPIKE,
        {"previous": 30, "current": 65, "increase": "117%"},
    )


def _notifier(handler) -> WebhookNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookNotifier(WEBHOOK_URL, client=client)


class TestRenderAlert:
    def test_contains_type_severity_and_details(self):
        text = render_alert(_event())

        assert "**Security Alert**" in text
        assert "**Type:** connection_spike" in text
        assert "**Severity:** high" in text
        assert '"increase": "117%"' in text
        assert text.endswith("```")


class TestWebhookNotifier:
    @pytest.mark.asyncio
    async def test_posts_discord_payload(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        notifier = _notifier(handler)
        await notifier.send(_event())
        await notifier.close()

        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert str(requests[0].url) == WEBHOOK_URL
        body = json.loads(requests[0].content)
        assert body["username"] == "Home SOC Bot"
        assert body["content"] == render_alert(_event())

    @pytest.mark.asyncio
    async def test_error_status_raises_dispatch_error(self):
        notifier = _notifier(lambda request: httpx.Response(429))

        with pytest.raises(DispatchError, match="HTTP 429"):
            await notifier.send(_event())

    @pytest.mark.asyncio
    async def test_transport_error_raises_dispatch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = _notifier(handler)

        with pytest.raises(DispatchError, match="request failed"):
            await notifier.send(_event())


class TestAlertDispatcher:
    @pytest.mark.asyncio
    async def test_no_channel_logs_alert(self, caplog):
        dispatcher = AlertDispatcher()

        with caplog.at_level(logging.WARNING, logger="homesoc.alerts.dispatcher"):
            await dispatcher.dispatch(_event())

        assert "no webhook configured" in caplog.text
        assert "connection_spike" in caplog.text
        assert dispatcher.stats["logged"] == 1

    @pytest.mark.asyncio
    async def test_successful_delivery_counted(self):
        dispatcher = AlertDispatcher(_notifier(lambda request: httpx.Response(200)))

        await dispatcher.dispatch(_event())
        await dispatcher.close()

        assert dispatcher.stats == {"sent": 1, "failed": 0, "logged": 0}

    @pytest.mark.asyncio
    async def test_failed_delivery_never_raises(self, caplog):
        dispatcher = AlertDispatcher(_notifier(lambda request: httpx.Response(500)))

        with caplog.at_level(logging.ERROR, logger="homesoc.alerts.dispatcher"):
            await dispatcher.dispatch(_event())

        assert dispatcher.stats["failed"] == 1
        assert "HTTP 500" in caplog.text

    @pytest.mark.asyncio
    async def test_delivery_is_attempted_once(self):
        attempts = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal attempts
            attempts += 1
            return httpx.Response(503)

        dispatcher = AlertDispatcher(_notifier(handler))
        await dispatcher.dispatch(_event())

        assert attempts == 1

    @pytest.mark.asyncio
    async def test_dispatch_nowait_runs_in_background(self):
        dispatcher = AlertDispatcher(_notifier(lambda request: httpx.Response(204)))

        task = dispatcher.dispatch_nowait(_event())
        assert dispatcher.pending == 1

        await dispatcher.drain()

        assert task.done()
        assert task.exception() is None
        assert dispatcher.pending == 0
        assert dispatcher.stats["sent"] == 1
