"""
app/api/responses.py

JSON response helpers shared by the submission controllers and the
global exception handlers in main.py.
"""

from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.constants import FALLBACK_INSTRUCTION


def with_fallback(message: str) -> str:
    """Append the call-us instruction every user-visible failure carries."""
    return f"{message.rstrip('.')}. {FALLBACK_INSTRUCTION.format(phone=settings.support_phone)}"


def fail(message: str, status: int = 400) -> JSONResponse:
    """Return ``{"success": false, "message": ...}`` with the fallback instruction appended."""
    return JSONResponse(
        status_code=status,
        content={"success": False, "message": with_fallback(message)},
    )
