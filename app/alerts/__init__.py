"""app/alerts/__init__.py — public API of the alerts package."""

from app.alerts.base import AlertOutcome, Alerter
from app.alerts.dispatcher import AlertDispatcher
from app.alerts.webhook_alerter import WebhookAlerter

__all__ = [
    "Alerter",
    "AlertOutcome",
    "AlertDispatcher",
    "WebhookAlerter",
]
