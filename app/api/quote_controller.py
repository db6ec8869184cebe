"""
app/api/quote_controller.py

Handles incoming requests to /submitQuote.

This layer is responsible only for HTTP concerns:
  - Buffering the raw multipart body and handing it, with its
    Content-Type header, to SubmissionService.
  - Translating service-level errors into appropriate HTTP responses.
  - Serving a static status page on GET for manual checks.

Responses (POST):
  200  The quote email (with any attachments) was sent.
  400  The body was empty or not valid multipart/form-data, parsing timed
       out, the client disconnected mid-upload, a required field was
       missing, or the email was malformed.
  500  An upload could not be written to disk, or the mail relay could
       not be reached or rejected the message.
"""

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.requests import ClientDisconnect

from app.api.responses import fail
from app.core.constants import (
    DELIVERY_FAILED_MESSAGE,
    UPLOAD_FAILED_MESSAGE,
    UPLOAD_INTERRUPTED_MESSAGE,
)
from app.core.exceptions import (
    AppBaseException,
    DeliveryError,
    FieldValidationError,
    ParseError,
    ParseTimeoutError,
    StagingError,
)
from app.core.logger import get_logger
from app.models.submission_models import SubmissionResponse
from app.services.submission_service import submission_service

logger = get_logger(__name__)

router = APIRouter(tags=["Quote"])

_STATUS_PAGE = """<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; max-width: 800px; margin: 50px auto; padding: 20px;">
  <div style="background: #00D4FF; color: #0A0E27; padding: 20px; border-radius: 10px;">
    <h1>Quote Endpoint Active</h1>
    <p>Endpoint is working and ready to receive requests.</p>
  </div>
</body>
</html>
"""


@router.get("/submitQuote", response_class=HTMLResponse, summary="Quote endpoint status page")
async def quote_status() -> HTMLResponse:
    """Human-readable confirmation that the endpoint is deployed."""
    return HTMLResponse(content=_STATUS_PAGE)


@router.post("/submitQuote", response_model=SubmissionResponse, summary="Submit a quote request")
async def submit_quote(request: Request) -> JSONResponse:
    """
    Accepts multipart/form-data with the fields
    ``company, contact_person, email, phone?, component_type, quantity?,
    material?, timeline?, description`` and zero or more file parts, which
    are attached to the notification email.
    """
    try:
        body = await request.body()
        logger.info("Quote request received — %d byte(s).", len(body))
        result: SubmissionResponse = await submission_service.submit_quote(
            body, request.headers.get("content-type")
        )

    except ClientDisconnect:
        logger.warning("Client disconnected while uploading a quote request.")
        return fail(UPLOAD_INTERRUPTED_MESSAGE)

    except ParseTimeoutError as exc:
        logger.warning("Quote upload timed out: %s", exc)
        return fail("Timed out reading the uploaded form")

    except StagingError as exc:
        logger.error("Could not stage quote upload: %s", exc)
        return fail(UPLOAD_FAILED_MESSAGE, status=500)

    except ParseError as exc:
        return fail(f"Could not read the submitted form ({exc})")

    except FieldValidationError as exc:
        return fail(str(exc))

    except DeliveryError as exc:
        logger.error("Quote delivery failed: %s", exc)
        return fail(DELIVERY_FAILED_MESSAGE, status=500)

    except AppBaseException as exc:
        logger.exception("Application error during quote submission: %s", exc)
        return fail(DELIVERY_FAILED_MESSAGE, status=500)

    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error during quote submission: %s", exc)
        return fail(DELIVERY_FAILED_MESSAGE, status=500)

    return JSONResponse(status_code=200, content=result.model_dump())
