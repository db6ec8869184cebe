"""
app/services/notification_formatter.py

Renders validated submissions into NotificationPayloads.

Everything here is pure: the caller passes the submission time, the
recipients and the display timezone, so the same inputs always produce
the same subject and HTML.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape
from markupsafe import Markup, escape

from app.mailer.base import MailAttachment, MailMessage
from app.multipart.base import StagedFile

_NOT_PROVIDED = "Not provided"
_NOT_AVAILABLE = "N/A"

_CONTACT_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px;">
  <h2 style="color: #0A0E27; border-bottom: 3px solid #00D4FF;">New Contact - Engineers India</h2>
  <div style="background: #f8f9fa; padding: 20px; margin: 20px 0;">
    <p><strong>Name:</strong> {{ name }}</p>
    <p><strong>Company:</strong> {{ company }}</p>
    <p><strong>Email:</strong> {{ email }}</p>
    <p><strong>Phone:</strong> {{ phone }}</p>
    <p><strong>Subject:</strong> {{ subject }}</p>
    <p><strong>Message:</strong><br>{{ message | nl2br }}</p>
  </div>
  <p>Submitted: {{ submitted }}</p>
</div>
"""

_QUOTE_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px;">
  <h2 style="color: #0A0E27; border-bottom: 3px solid #00D4FF;">Quote Request - Engineers India</h2>
  <div style="background: #f8f9fa; padding: 20px; margin: 20px 0;">
    <h3>Company Information</h3>
    <p><strong>Company:</strong> {{ company }}</p>
    <p><strong>Contact:</strong> {{ contact_person }}</p>
    <p><strong>Email:</strong> {{ email }}</p>
    <p><strong>Phone:</strong> {{ phone }}</p>
  </div>
  <div style="background: #f8f9fa; padding: 20px; margin: 20px 0;">
    <h3>Project Details</h3>
    <p><strong>Component:</strong> {{ component_type }}</p>
    <p><strong>Quantity:</strong> {{ quantity }}</p>
    <p><strong>Material:</strong> {{ material }}</p>
    <p><strong>Timeline:</strong> {{ timeline }}</p>
    <p><strong>Description:</strong><br>{{ description | nl2br }}</p>
  </div>
{%- if attachments %}
  <div style="margin: 20px 0;">
    <p><strong>Attached Files:</strong> {{ attachments | length }}</p>
    <ul>
    {%- for name in attachments %}
      <li>{{ name }}</li>
    {%- endfor %}
    </ul>
  </div>
{%- endif %}
  <p>Submitted: {{ submitted }}</p>
</div>
"""


def _nl2br(value: str) -> Markup:
    return Markup("<br>\n").join(escape(line) for line in value.splitlines())


_env = Environment(
    loader=DictLoader({"contact.html": _CONTACT_TEMPLATE, "quote.html": _QUOTE_TEMPLATE}),
    autoescape=select_autoescape(default=True, default_for_string=True),
    undefined=StrictUndefined,
)
_env.filters["nl2br"] = _nl2br


# ── Payload ────────────────────────────────────────────────────────────────────

@dataclass
class NotificationPayload:
    """
    A rendered notification, independent of the mail transport.

    ``attachments`` reference staged files and are only valid until the
    pipeline's cleanup step.
    """

    recipients: List[str]
    subject: str
    html: str
    attachments: List[StagedFile] = field(default_factory=list)
    reply_to: Optional[str] = None

    def to_mail_message(self, sender: str) -> MailMessage:
        return MailMessage(
            sender=sender,
            to=list(self.recipients),
            subject=self.subject,
            html=self.html,
            attachments=[
                MailAttachment(filename=f.filename, path=f.path, content_type=f.content_type)
                for f in self.attachments
            ],
            reply_to=self.reply_to,
        )


# ── Helpers ────────────────────────────────────────────────────────────────────

def format_timestamp(moment: datetime, timezone_name: str) -> str:
    """Render ``moment`` as ``18/10/2026, 03:04:05 PM IST`` in the given zone."""
    return moment.astimezone(ZoneInfo(timezone_name)).strftime("%d/%m/%Y, %I:%M:%S %p %Z")


def single_line(value: str) -> str:
    """Collapse whitespace (including CR/LF) so the value is safe in a mail header."""
    return " ".join(value.split())


# ── Builders ───────────────────────────────────────────────────────────────────

def build_contact_notification(
    fields: Mapping[str, str],
    recipients: Sequence[str],
    submitted_at: datetime,
    timezone_name: str,
) -> NotificationPayload:
    """Render a validated contact submission. Replies go to the submitter."""
    html = _env.get_template("contact.html").render(
        name=fields["name"],
        company=fields.get("company") or _NOT_PROVIDED,
        email=fields["email"],
        phone=fields.get("phone") or _NOT_PROVIDED,
        subject=fields["subject"],
        message=fields["message"],
        submitted=format_timestamp(submitted_at, timezone_name),
    )
    return NotificationPayload(
        recipients=list(recipients),
        subject=single_line(f"Contact: {fields['subject']} - {fields['name']}"),
        html=html,
        reply_to=fields["email"],
    )


def build_quote_notification(
    fields: Mapping[str, str],
    files: Sequence[StagedFile],
    recipients: Sequence[str],
    submitted_at: datetime,
    timezone_name: str,
) -> NotificationPayload:
    """Render a validated quote request; every staged file becomes an attachment."""
    html = _env.get_template("quote.html").render(
        company=fields["company"],
        contact_person=fields["contact_person"],
        email=fields["email"],
        phone=fields.get("phone") or _NOT_AVAILABLE,
        component_type=fields["component_type"],
        quantity=fields.get("quantity") or _NOT_AVAILABLE,
        material=fields.get("material") or _NOT_AVAILABLE,
        timeline=fields.get("timeline") or _NOT_AVAILABLE,
        description=fields["description"],
        attachments=[f.filename for f in files],
        submitted=format_timestamp(submitted_at, timezone_name),
    )
    return NotificationPayload(
        recipients=list(recipients),
        subject=single_line(f"Quote: {fields['company']} - {fields['component_type']}"),
        html=html,
        attachments=list(files),
        reply_to=fields["email"],
    )
