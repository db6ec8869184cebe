"""
app/services/submission_service.py

Orchestrates both submission flows.

Quote requests:

    raw body + content-type
      └─ FormExtractor.extract()   → ParsedForm   (bounded by parse timeout)
           └─ validate_fields()    → cleaned fields
                └─ build_quote_notification() → NotificationPayload
                     └─ Mailer.send()          (fatal on failure)
                          └─ AlertDispatcher.dispatch()  (detached, best-effort)
      finally: StagingArea.cleanup()

Contact submissions run the same steps minus parsing and staging.

Dependencies are constructor-injected so tests can swap them for mocks;
the module-level singleton wires in the production implementations.
"""

from __future__ import annotations

import asyncio
import enum
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Mapping, Optional
from uuid import uuid4

from app.alerts.dispatcher import AlertDispatcher
from app.core.config import Settings, settings
from app.core.constants import (
    CONTACT_REQUIRED_FIELDS,
    CONTACT_SUCCESS_MESSAGE,
    QUOTE_REQUIRED_FIELDS,
    QUOTE_SUCCESS_MESSAGE,
)
from app.core.exceptions import DeliveryError, FieldValidationError, ParseError, ParseTimeoutError
from app.core.logger import get_run_logger
from app.mailer.base import Mailer
from app.mailer.smtp_mailer import get_mailer
from app.models.contact_models import ContactRequest
from app.models.submission_models import SubmissionResponse
from app.multipart.base import ParsedForm
from app.multipart.extractor import FormExtractor
from app.multipart.file_sink import StagingArea
from app.services.notification_formatter import (
    NotificationPayload,
    build_contact_notification,
    build_quote_notification,
)
from app.services.validation import validate_fields


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    PARSING = "parsing"
    PARSE_FAILED = "parse_failed"
    PARSED = "parsed"
    VALIDATING = "validating"
    VALIDATION_FAILED = "validation_failed"
    VALIDATED = "validated"
    NOTIFYING = "notifying"
    NOTIFY_FAILED = "notify_failed"
    NOTIFIED = "notified"
    CLEANING_UP = "cleaning_up"
    DONE = "done"


class SubmissionRun:
    """
    State of a single pipeline invocation.

    ``outcome`` keeps the last state reached before cleanup so the log
    line for DONE says how the run ended.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.run_id = uuid4().hex[:8]
        self.state = PipelineState.IDLE
        self.outcome = PipelineState.IDLE
        self.log = get_run_logger(__name__, kind, self.run_id)

    def advance(self, state: PipelineState) -> None:
        if state not in (PipelineState.CLEANING_UP, PipelineState.DONE):
            self.outcome = state
        self.state = state
        if state is PipelineState.DONE:
            self.log.info("done (outcome: %s)", self.outcome.value)
        else:
            self.log.debug("→ %s", state.value)


class SubmissionService:
    """
    Runs contact and quote submissions end to end.

    Guarantees:
    - **Fail closed**: nothing is mailed unless every required field is
      present and the email is well-formed.
    - **Mail is the outcome**: a relay failure fails the submission; alert
      failures never do.
    - **No residue**: every staged upload is deleted before
      ``submit_quote`` returns or raises, on every path.
    """

    def __init__(
        self,
        extractor: FormExtractor | None = None,
        mailer: Mailer | None = None,
        alerts: AlertDispatcher | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config: Settings = config or settings
        self._extractor: FormExtractor = extractor or FormExtractor(chunk_size=self._config.parse_chunk_size)
        self._mailer: Optional[Mailer] = mailer
        self._alerts: AlertDispatcher = alerts or AlertDispatcher.from_settings(self._config)
        self._clock: Callable[[], datetime] = clock or (lambda: datetime.now(timezone.utc))

    @property
    def alerts(self) -> AlertDispatcher:
        return self._alerts

    # ── Public API ─────────────────────────────────────────────────────────────

    async def submit_contact(self, request: ContactRequest) -> SubmissionResponse:
        """
        Validate, mail and alert a contact-form submission.

        Raises:
            FieldValidationError : A required field is missing or the email is malformed.
            DeliveryError        : The mail relay failed.
        """
        run = SubmissionRun("contact")
        try:
            fields = self._validate(run, request.model_dump(), CONTACT_REQUIRED_FIELDS)

            payload = build_contact_notification(
                fields,
                recipients=self._config.contact_recipients,
                submitted_at=self._clock(),
                timezone_name=self._config.display_timezone,
            )
            await self._notify(run, payload)

            self._alerts.dispatch("contact", fields.get("company") or fields["name"])
            return SubmissionResponse(success=True, message=CONTACT_SUCCESS_MESSAGE)
        finally:
            run.advance(PipelineState.DONE)

    async def submit_quote(self, body: bytes, content_type: Optional[str]) -> SubmissionResponse:
        """
        Parse, validate, mail and alert a multipart quote request.

        Args:
            body         : The fully buffered request body.
            content_type : The request's Content-Type header.

        Raises:
            ParseError           : Empty or malformed body.
            StagingError         : An upload could not be written to disk.
            ParseTimeoutError    : Parsing exceeded ``parse_timeout_seconds``.
            FieldValidationError : A required field is missing or the email is malformed.
            DeliveryError        : The mail relay failed.
        """
        run = SubmissionRun("quote")
        staging = StagingArea(self._config.upload_dir)
        try:
            form = await self._parse(run, body, content_type, staging)
            fields = self._validate(run, form.fields, QUOTE_REQUIRED_FIELDS)

            payload = build_quote_notification(
                fields,
                form.files,
                recipients=self._config.quote_recipients,
                submitted_at=self._clock(),
                timezone_name=self._config.display_timezone,
            )
            await self._notify(run, payload)

            self._alerts.dispatch("quote", fields["company"])
            return SubmissionResponse(success=True, message=QUOTE_SUCCESS_MESSAGE)
        finally:
            run.advance(PipelineState.CLEANING_UP)
            removed = await staging.cleanup()
            if removed:
                run.log.info("Removed %d staged file(s).", removed)
            run.advance(PipelineState.DONE)

    # ── Pipeline steps ─────────────────────────────────────────────────────────

    async def _parse(
        self,
        run: SubmissionRun,
        body: bytes,
        content_type: Optional[str],
        staging: StagingArea,
    ) -> ParsedForm:
        run.advance(PipelineState.PARSING)
        run.log.info("Parsing %d byte(s).", len(body))
        timeout = self._config.parse_timeout_seconds
        try:
            form = await asyncio.wait_for(
                self._extractor.extract(body, content_type, staging),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            run.advance(PipelineState.PARSE_FAILED)
            run.log.warning("Parse timed out after %.1fs.", timeout)
            raise ParseTimeoutError(f"Timed out reading the upload after {timeout:g}s") from exc
        except ParseError as exc:
            run.advance(PipelineState.PARSE_FAILED)
            run.log.warning("Parse failed: %s", exc)
            raise

        run.advance(PipelineState.PARSED)
        return form

    def _validate(
        self,
        run: SubmissionRun,
        fields: Mapping[str, Optional[str]],
        required: Iterable[str],
    ) -> Dict[str, str]:
        run.advance(PipelineState.VALIDATING)
        try:
            cleaned = validate_fields(fields, required).raise_for_errors()
        except FieldValidationError as exc:
            run.advance(PipelineState.VALIDATION_FAILED)
            run.log.warning("Rejected: %s", exc)
            raise
        run.advance(PipelineState.VALIDATED)
        return cleaned

    async def _notify(self, run: SubmissionRun, payload: NotificationPayload) -> None:
        run.advance(PipelineState.NOTIFYING)
        try:
            mailer = self._mailer or get_mailer()
            await mailer.send(payload.to_mail_message(self._config.sender_address))
        except DeliveryError as exc:
            run.advance(PipelineState.NOTIFY_FAILED)
            run.log.error("Mail delivery failed: %s", exc)
            raise
        run.advance(PipelineState.NOTIFIED)
        run.log.info("Notification sent with %d attachment(s).", len(payload.attachments))


# ── Module-level singleton ─────────────────────────────────────────────────────
# Controllers import this instance.  Tests construct SubmissionService
# directly with injected mocks.

submission_service = SubmissionService()
