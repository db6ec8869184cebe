"""
app/alerts/webhook_alerter.py

Alerter that POSTs ``{"phone": ..., "message": ...}`` to a WhatsApp
gateway webhook.
"""

from __future__ import annotations

from typing import Optional

import httpx

from app.alerts.base import Alerter
from app.core.exceptions import AlertError


class WebhookAlerter(Alerter):
    """
    One short-lived ``httpx.AsyncClient`` per call; alerts are rare and
    the dispatcher already runs them off the request path.

    ``transport`` lets tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def send(self, phone: str, text: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json={"phone": phone, "message": text})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AlertError(f"Alert webhook failed for {phone}: {exc}") from exc
