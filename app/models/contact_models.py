"""
app/models/contact_models.py

Pydantic DTO for the contact flow.

Every field is optional at the schema level: a missing required field
is reported by the validation step as a 400 with the field names, rather
than by the framework as a 422.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ContactRequest(BaseModel):
    """
    JSON body for POST /submitContact.

        {
            "name": "Jo",
            "company": "Acme",
            "email": "jo@acme.com",
            "phone": "+91 98765 43210",
            "subject": "Brackets",
            "message": "Do you machine aluminium?"
        }
    """

    # Forms post phone numbers as JSON numbers as often as strings.
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    name: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
