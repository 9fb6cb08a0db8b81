"""Outbound alert delivery."""

from homesoc.alerts.dispatcher import AlertDispatcher, WebhookNotifier, render_alert

__all__ = ["AlertDispatcher", "WebhookNotifier", "render_alert"]
