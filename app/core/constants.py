"""
app/core/constants.py

Application-wide fixed constants.

These are business rules that are part of the system's contract and are
NOT configurable via environment variables.
"""

import re
from typing import Tuple

# ── Required fields ────────────────────────────────────────────────────────────

#: Fields a quote request must carry (multipart form field names).
QUOTE_REQUIRED_FIELDS: Tuple[str, ...] = (
    "company",
    "contact_person",
    "email",
    "component_type",
    "description",
)

#: Fields a contact submission must carry (JSON keys).
CONTACT_REQUIRED_FIELDS: Tuple[str, ...] = ("name", "email", "subject", "message")

# ── Email syntax ───────────────────────────────────────────────────────────────

#: local-part@domain.tld, no whitespace anywhere, exactly one "@" before the domain.
EMAIL_PATTERN: re.Pattern = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# ── Multipart ──────────────────────────────────────────────────────────────────

MULTIPART_CONTENT_TYPE: str = "multipart/form-data"

# ── User-facing messages ───────────────────────────────────────────────────────

CONTACT_SUCCESS_MESSAGE: str = "Message sent successfully!"
QUOTE_SUCCESS_MESSAGE: str = (
    "Quote request submitted successfully! We will contact you within 24 hours."
)
DELIVERY_FAILED_MESSAGE: str = "Failed to send your request."
UPLOAD_FAILED_MESSAGE: str = "Failed to process uploaded file."
UPLOAD_INTERRUPTED_MESSAGE: str = "The upload was interrupted before it completed."
FALLBACK_INSTRUCTION: str = "Please try again or call {phone}"

# ── Alert texts ────────────────────────────────────────────────────────────────

ALERT_TEMPLATES = {
    "quote": "🔔 NEW QUOTE REQUEST\nFrom: {sender}\nCheck: {inbox}",
    "contact": "📞 NEW CONTACT\nFrom: {sender}\nCheck: {inbox}",
}
