"""
app/models/submission_models.py

Response DTOs shared by the submission and health endpoints.
"""

from pydantic import BaseModel


class SubmissionResponse(BaseModel):
    """
    Body returned by POST /submitContact and POST /submitQuote.

        { "success": true,  "message": "Message sent successfully!" }
        { "success": false, "message": "Missing required fields: email. Please try again or call …" }
    """

    success: bool
    message: str


class HealthResponse(BaseModel):
    """Body returned by GET /health."""

    status: str
    timestamp: str
    service: str
    version: str
