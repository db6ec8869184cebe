"""
app/mailer/smtp_mailer.py

SMTP implementation of the Mailer interface, plus the process-wide
mailer handle.

smtplib is blocking, so each send runs in a worker thread and opens its
own connection. The SMTPMailer instance itself only holds immutable
connection settings and is safe to share across overlapping requests.
"""

from __future__ import annotations

import asyncio
import mimetypes
import smtplib
import ssl
import threading
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

from app.core.config import Settings, settings
from app.core.exceptions import DeliveryError, MailerConfigError
from app.core.logger import get_logger
from app.mailer.base import MailAttachment, Mailer, MailMessage

logger = get_logger(__name__)

_TLS_MODES = ("starttls", "ssl", "none")
_PLAIN_TEXT_FALLBACK = "This notification is formatted as HTML. Please view it in an HTML-capable mail client."


class SMTPMailer(Mailer):
    """Mailer backed by an SMTP relay (Gmail by default)."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str = "",
        password: str = "",
        tls_mode: str = "starttls",
        timeout: float = 20.0,
    ) -> None:
        if tls_mode not in _TLS_MODES:
            raise MailerConfigError(f"Unknown SMTP TLS mode '{tls_mode}' (expected one of {_TLS_MODES})")
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._tls_mode = tls_mode
        self._timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings) -> "SMTPMailer":
        """
        Build a mailer from application settings.

        Raises:
            MailerConfigError: SMTP credentials are not configured.
        """
        if not config.smtp_user or not config.smtp_password:
            raise MailerConfigError("Email configuration missing (SMTP_USER / SMTP_PASSWORD)")
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            user=config.smtp_user,
            password=config.smtp_password,
            tls_mode=config.smtp_tls_mode,
            timeout=config.smtp_timeout_seconds,
        )

    # ── Mailer interface ───────────────────────────────────────────────────────

    async def send(self, message: MailMessage) -> None:
        if not message.to:
            raise DeliveryError("No recipients configured for this notification.")

        try:
            await asyncio.to_thread(self._send_blocking, message)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            raise DeliveryError(f"SMTP delivery to {self._host}:{self._port} failed: {exc}") from exc

        logger.info(
            "Mail accepted by relay — subject: '%s', %d recipient(s), %d attachment(s).",
            message.subject,
            len(message.to),
            len(message.attachments),
        )

    # ── Internals ──────────────────────────────────────────────────────────────

    def _send_blocking(self, message: MailMessage) -> None:
        email = build_email(message)

        if self._tls_mode == "ssl":
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout, context=context) as smtp:
                self._login(smtp)
                smtp.send_message(email)
            return

        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
            if self._tls_mode == "starttls":
                smtp.ehlo()
                smtp.starttls(context=ssl.create_default_context())
                smtp.ehlo()
            self._login(smtp)
            smtp.send_message(email)

    def _login(self, smtp: smtplib.SMTP) -> None:
        if self._user and self._password:
            smtp.login(self._user, self._password)


def _attach(email: EmailMessage, attachment: MailAttachment) -> None:
    content_type = attachment.content_type or mimetypes.guess_type(attachment.filename)[0]
    if not content_type or "/" not in content_type:
        content_type = "application/octet-stream"
    maintype, subtype = content_type.split("/", 1)
    email.add_attachment(
        attachment.path.read_bytes(),
        maintype=maintype,
        subtype=subtype,
        filename=attachment.filename,
    )


def build_email(message: MailMessage) -> EmailMessage:
    """Translate a MailMessage into a MIME message (HTML body, plain-text fallback, attachments)."""
    email = EmailMessage()
    email["From"] = message.sender
    email["To"] = ", ".join(message.to)
    email["Subject"] = message.subject
    email["Message-ID"] = make_msgid()
    if message.reply_to:
        email["Reply-To"] = message.reply_to

    email.set_content(_PLAIN_TEXT_FALLBACK)
    email.add_alternative(message.html, subtype="html")

    for attachment in message.attachments:
        _attach(email, attachment)
    return email


# ── Process-wide handle ────────────────────────────────────────────────────────
# Built on first use and reused for the life of the process. The lock makes
# concurrent first use construct exactly one instance.

_mailer: Optional[Mailer] = None
_mailer_lock = threading.Lock()


def get_mailer() -> Mailer:
    """
    Return the shared mailer, constructing it on first call.

    Raises:
        MailerConfigError: SMTP credentials are not configured. Nothing is
                           cached in that case, so a later call retries.
    """
    global _mailer
    if _mailer is None:
        with _mailer_lock:
            if _mailer is None:
                _mailer = SMTPMailer.from_settings(settings)
                logger.info("SMTP mailer initialised for %s:%d.", settings.smtp_host, settings.smtp_port)
    return _mailer


def reset_mailer() -> None:
    """Drop the shared mailer so the next get_mailer() rebuilds it."""
    global _mailer
    with _mailer_lock:
        _mailer = None
