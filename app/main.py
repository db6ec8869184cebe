"""
app/main.py

FastAPI application entry point.

Responsibilities:
  - Create the FastAPI app with metadata from config
  - Allow cross-origin calls from the website (OPTIONS → 204)
  - Register the contact and quote routers
  - Map request-validation, HTTP and uncaught application errors onto the
    ``{"success": false, "message": ...}`` shape
  - Expose a /health endpoint for liveness probes
  - Let in-flight alert tasks finish on shutdown
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.contact_controller import router as contact_router
from app.api.quote_controller import router as quote_router
from app.api.responses import fail, with_fallback
from app.core.config import settings
from app.core.cors import PreflightCORSMiddleware
from app.core.exceptions import AppBaseException
from app.core.logger import get_logger
from app.models.submission_models import HealthResponse
from app.services.submission_service import submission_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s v%s starting.", settings.app_name, settings.app_version)
    yield
    await submission_service.alerts.drain()


# ── App instance ───────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Receives contact-form and quote-request submissions from the website, "
        "emails them to the sales inbox and alerts the team over WhatsApp."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────────────────────────

app.include_router(contact_router)
app.include_router(quote_router)

# ── Exception handlers ─────────────────────────────────────────────────────────

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Unparseable or wrongly-typed JSON bodies are a client error, not a 422."""
    logger.warning("Invalid request body on %s: %s", request.url.path, exc.errors())
    return fail("Invalid request body")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """405 / 404 and friends in the same shape as every other failure."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": with_fallback(str(exc.detail))},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(AppBaseException)
async def app_exception_handler(request: Request, exc: AppBaseException) -> JSONResponse:
    """
    Safety-net for any AppBaseException that escapes controller-level handling.
    """
    logger.exception("Unhandled application error on %s: %s", request.url.path, exc)
    return fail("Something went wrong", status=500)


# ── Health endpoint ────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse, tags=["Health"], summary="Liveness probe")
async def health() -> dict:
    """Returns 200 OK when the service is running."""
    return HealthResponse(
        status="OK",
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        service=settings.service_name,
        version=settings.app_version,
    ).model_dump()
