"""
app/alerts/dispatcher.py

Fire-and-forget fan-out of submission alerts.

``dispatch`` schedules a detached task and returns at once; the task
swallows and logs every per-phone failure. Nothing the alerts do can
change the outcome of the submission that triggered them.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Set

from app.alerts.base import AlertOutcome, Alerter
from app.alerts.webhook_alerter import WebhookAlerter
from app.core.config import Settings
from app.core.constants import ALERT_TEMPLATES
from app.core.logger import get_logger

logger = get_logger(__name__)


class AlertDispatcher:
    """Sends one alert text to every configured phone, concurrently and best-effort."""

    def __init__(
        self,
        alerter: Optional[Alerter],
        phones: List[str],
        inbox: str = "",
    ) -> None:
        self._alerter = alerter
        self._phones = list(phones)
        self._inbox = inbox
        # Strong references so the event loop cannot collect in-flight tasks.
        self._pending: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, config: Settings) -> "AlertDispatcher":
        alerter = None
        if config.alert_webhook_url:
            alerter = WebhookAlerter(config.alert_webhook_url, timeout=config.alert_timeout_seconds)
        return cls(alerter, config.alert_phone_numbers, inbox=config.alert_inbox)

    @property
    def enabled(self) -> bool:
        return self._alerter is not None and bool(self._phones)

    def render(self, kind: str, sender: str) -> str:
        return ALERT_TEMPLATES[kind].format(sender=sender, inbox=self._inbox)

    def dispatch(self, kind: str, sender: str) -> Optional["asyncio.Task[List[AlertOutcome]]"]:
        """
        Schedule alerts for a ``kind`` ("quote" / "contact") submission.

        Returns the detached task (tests may await it), or None when alerts
        are not configured.
        """
        if not self.enabled:
            logger.debug("Alerts skipped — no webhook URL or phone numbers configured.")
            return None

        task = asyncio.get_running_loop().create_task(self._fan_out(self.render(kind, sender)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight alert tasks (called on application shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # ── Internals ──────────────────────────────────────────────────────────────

    async def _fan_out(self, text: str) -> List[AlertOutcome]:
        outcomes = await asyncio.gather(*(self._send_one(phone, text) for phone in self._phones))

        failed = [o for o in outcomes if not o.delivered]
        if failed:
            logger.warning("Alerts: %d of %d failed.", len(failed), len(outcomes))
        else:
            logger.info("Alerts: %d delivered.", len(outcomes))
        return list(outcomes)

    async def _send_one(self, phone: str, text: str) -> AlertOutcome:
        try:
            await self._alerter.send(phone, text)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Alert to %s failed: %s", phone, exc)
            return AlertOutcome(phone=phone, delivered=False, error=str(exc))
        return AlertOutcome(phone=phone, delivered=True)
