"""Best-effort delivery of anomaly alerts.

Alerts go to a Discord-compatible webhook when one is configured and to
the operator log otherwise. Delivery is one-shot: no retry, no backoff.
The next detection cycle re-raises a condition that persists.
"""

import asyncio
import json
import logging

import httpx

from homesoc.errors import DispatchError
from homesoc.network.models import AnomalyEvent

logger = logging.getLogger(__name__)


def render_alert(event: AnomalyEvent) -> str:
    """Render an anomaly as a human-readable chat message."""
    details = json.dumps(event.details, indent=2, default=str)
    return (
        f"🚨 **Security Alert**\n"
        f"**Type:** {event.type}\n"
        f"**Severity:** {event.severity}\n"
        f"**Details:** ```json\n{details}\n```"
    )


class WebhookNotifier:
    """Posts alerts to a webhook URL."""

    def __init__(
        self,
        webhook_url: str,
        username: str = "Home SOC Bot",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize notifier.

        Args:
            webhook_url: Destination URL
            username: Display name shown with the message
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client (tests, shared pools)
        """
        self.webhook_url = webhook_url
        self.username = username
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def send(self, event: AnomalyEvent) -> None:
        """Deliver one alert.

        Raises:
            DispatchError: On transport failure or a non-2xx response
        """
        payload = {"content": render_alert(event), "username": self.username}
        client = await self._get_client()
        try:
            response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise DispatchError(f"Webhook request failed: {e}") from e

        if not response.is_success:
            raise DispatchError(f"Webhook returned HTTP {response.status_code}")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


class AlertDispatcher:
    """Routes anomaly events to the configured channel without blocking.

    Usage:
        dispatcher = AlertDispatcher(WebhookNotifier(url))
        dispatcher.dispatch_nowait(event)   # returns immediately
        ...
        await dispatcher.drain()            # before the event loop closes
    """

    def __init__(self, notifier: WebhookNotifier | None = None):
        """Initialize dispatcher.

        Args:
            notifier: Outbound channel. None means log-only delivery.
        """
        self.notifier = notifier
        self._pending: set[asyncio.Task[None]] = set()
        self.stats = {"sent": 0, "failed": 0, "logged": 0}

    async def dispatch(self, event: AnomalyEvent) -> None:
        """Deliver an alert. Never raises to the caller."""
        if self.notifier is None:
            logger.warning(f"Alert (no webhook configured):\n{render_alert(event)}")
            self.stats["logged"] += 1
            return

        try:
            await self.notifier.send(event)
        except DispatchError as e:
            self.stats["failed"] += 1
            logger.error(f"Failed to send {event.type} alert: {e}")
            return
        except Exception as e:
            self.stats["failed"] += 1
            logger.exception(f"Unexpected error sending {event.type} alert: {e}")
            return

        self.stats["sent"] += 1
        logger.info(f"Sent {event.type} alert ({event.severity})")

    def dispatch_nowait(self, event: AnomalyEvent) -> asyncio.Task[None]:
        """Schedule delivery as a background task and return immediately.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self.dispatch(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for in-flight alerts to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Drain pending alerts and release the HTTP client."""
        await self.drain()
        if self.notifier is not None:
            await self.notifier.close()
