"""
app/services/validation.py

Pure checks on submitted fields: required-field presence and email syntax.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from app.core.constants import EMAIL_PATTERN
from app.core.exceptions import FieldValidationError


@dataclass
class ValidationResult:
    """
    Outcome of validating one submission.

    ``fields`` holds the whitespace-trimmed values of every non-empty
    field, required or not.
    """

    fields: Dict[str, str] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.missing and not self.invalid

    def raise_for_errors(self) -> Dict[str, str]:
        """Return the cleaned fields, or raise FieldValidationError if anything failed."""
        if not self.valid:
            raise FieldValidationError(missing=self.missing, invalid=self.invalid)
        return self.fields


def is_valid_email(value: Optional[str]) -> bool:
    """True iff ``value`` looks like ``local-part@domain.tld`` with no whitespace."""
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def validate_fields(
    fields: Mapping[str, Optional[str]],
    required: Iterable[str],
) -> ValidationResult:
    """
    Check ``fields`` against the ``required`` names.

    Blank (whitespace-only) values count as missing. When an ``email``
    value is present it must pass ``is_valid_email``; a malformed email is
    reported only once every required field is present.
    """
    cleaned = {
        name: value.strip()
        for name, value in fields.items()
        if isinstance(value, str) and value.strip()
    }

    result = ValidationResult(fields=cleaned)
    result.missing = [name for name in required if name not in cleaned]

    if not result.missing and "email" in cleaned and not is_valid_email(cleaned["email"]):
        result.invalid.append("email")

    return result
