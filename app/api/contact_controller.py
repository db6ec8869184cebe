"""
app/api/contact_controller.py

Handles incoming requests to POST /submitContact.

This layer is responsible only for HTTP concerns:
  - Accepting the JSON body (an unreadable body is turned into a 400 by
    the request-validation handler in main.py).
  - Delegating validation, mailing and alerts to SubmissionService.
  - Translating service-level errors into appropriate HTTP responses.

Responses:
  200  The notification email was sent.
  400  A required field was missing or the email address was malformed.
  405  Any method other than POST (OPTIONS is answered by the CORS layer).
  500  The mail relay could not be reached or rejected the message.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.api.responses import fail
from app.core.constants import DELIVERY_FAILED_MESSAGE
from app.core.exceptions import AppBaseException, DeliveryError, FieldValidationError
from app.core.logger import get_logger
from app.models.contact_models import ContactRequest
from app.models.submission_models import SubmissionResponse
from app.services.submission_service import submission_service

logger = get_logger(__name__)

router = APIRouter(tags=["Contact"])


@router.post("/submitContact", response_model=SubmissionResponse, summary="Submit the contact form")
async def submit_contact(body: ContactRequest) -> JSONResponse:
    """
    Accepts ``{name, company?, email, phone?, subject, message}`` and emails
    it to the contact inbox with Reply-To set to the submitter.
    """
    logger.info("Contact request received.")

    try:
        result: SubmissionResponse = await submission_service.submit_contact(body)

    except FieldValidationError as exc:
        return fail(str(exc))

    except DeliveryError as exc:
        logger.error("Contact delivery failed: %s", exc)
        return fail(DELIVERY_FAILED_MESSAGE, status=500)

    except AppBaseException as exc:
        logger.exception("Application error during contact submission: %s", exc)
        return fail(DELIVERY_FAILED_MESSAGE, status=500)

    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error during contact submission: %s", exc)
        return fail(DELIVERY_FAILED_MESSAGE, status=500)

    return JSONResponse(status_code=200, content=result.model_dump())
