"""
app/mailer/base.py

Abstract interface for the mail relay.

Services depend only on this interface, never on smtplib, so the
pipeline can be exercised with an AsyncMock in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


# ── Shared data-transfer objects ──────────────────────────────────────────────

@dataclass(frozen=True)
class MailAttachment:
    """A file on local disk to attach under ``filename``."""

    filename: str
    path: Path
    content_type: Optional[str] = None


@dataclass
class MailMessage:
    """
    A fully addressed notification, ready for the relay.

    Attributes:
        sender      : From address.
        to          : One or more recipient addresses.
        subject     : Single-line subject.
        html        : Rendered HTML body.
        attachments : Files to attach (paths must still exist at send time).
        reply_to    : Optional Reply-To address (the submitter).
    """

    sender: str
    to: List[str]
    subject: str
    html: str
    attachments: List[MailAttachment] = field(default_factory=list)
    reply_to: Optional[str] = None


# ── Abstract base ──────────────────────────────────────────────────────────────

class Mailer(ABC):
    """Contract every mail backend must fulfil."""

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """
        Deliver ``message`` to the relay.

        Returns once the relay has accepted the message.

        Raises:
            DeliveryError: If the relay rejects the message or is unreachable.
        """
