"""app/mailer/__init__.py — public API of the mailer package."""

from app.mailer.base import MailAttachment, Mailer, MailMessage
from app.mailer.smtp_mailer import SMTPMailer, get_mailer

__all__ = [
    "Mailer",
    "MailMessage",
    "MailAttachment",
    "SMTPMailer",
    "get_mailer",
]
