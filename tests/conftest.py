"""
tests/conftest.py

Shared pytest fixtures available to all test modules.

Fixtures defined here are auto-discovered by pytest; no import needed.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.alerts.dispatcher import AlertDispatcher
from app.core.config import Settings
from app.main import app
from app.mailer.base import Mailer
from app.services.submission_service import SubmissionService

BOUNDARY = "----TestBoundary7MA4YWxkTrZu0gW"

#: (field name, filename, content type, payload)
FilePart = Tuple[str, str, Optional[str], bytes]


# ── Core client fixture ────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    A synchronous TestClient wrapping the FastAPI app.

    session-scoped so the app is instantiated once per test run.
    The lifespan context (startup/shutdown events) is entered automatically.
    """
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


# ── Multipart helpers ──────────────────────────────────────────────────────────

def _build_multipart(
    fields: Dict[str, str],
    files: List[FilePart] = (),
    boundary: str = BOUNDARY,
    close: bool = True,
) -> bytes:
    lines: List[bytes] = []
    for name, value in fields.items():
        lines += [
            f"--{boundary}".encode(),
            f'Content-Disposition: form-data; name="{name}"'.encode(),
            b"",
            value.encode("utf-8"),
        ]
    for field_name, filename, content_type, payload in files:
        lines += [
            f"--{boundary}".encode(),
            f'Content-Disposition: form-data; name="{field_name}"; filename="{filename}"'.encode(),
        ]
        if content_type:
            lines.append(f"Content-Type: {content_type}".encode())
        lines += [b"", payload]
    if close:
        lines.append(f"--{boundary}--".encode())
        lines.append(b"")
    return b"\r\n".join(lines)


@pytest.fixture
def multipart_body() -> Callable[..., bytes]:
    """
    Build a raw multipart/form-data body.

    Usage:
        body = multipart_body({"company": "Acme"}, [("files", "a.pdf", "application/pdf", b"%PDF")])
    """
    return _build_multipart


@pytest.fixture
def multipart_content_type() -> str:
    return f"multipart/form-data; boundary={BOUNDARY}"


# ── Submission fixtures ────────────────────────────────────────────────────────

@pytest.fixture
def quote_fields() -> Dict[str, str]:
    """The minimal valid quote request."""
    return {
        "company": "Acme",
        "contact_person": "Jo",
        "email": "jo@acme.com",
        "component_type": "bracket",
        "description": "need 10",
    }


@pytest.fixture
def contact_payload() -> Dict[str, str]:
    """The minimal valid contact submission."""
    return {
        "name": "Jo",
        "email": "jo@acme.com",
        "subject": "Brackets",
        "message": "Do you machine aluminium?",
    }


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(upload_dir: Path) -> Settings:
    return Settings(
        smtp_user="bot@engineersindia.in",
        smtp_password="secret",
        contact_recipients=["contact@engineersindia.in"],
        quote_recipients=["sales@engineersindia.in", "ops@engineersindia.in"],
        alert_phone_numbers=["911111111111", "922222222222"],
        alert_inbox="sales@engineersindia.in",
        upload_dir=str(upload_dir),
        parse_timeout_seconds=5.0,
        parse_chunk_size=256,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 10, 18, 9, 34, 5, tzinfo=timezone.utc)


@pytest.fixture
def mailer() -> MagicMock:
    """A Mailer whose send() succeeds."""
    mock = MagicMock(spec=Mailer)
    mock.send = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def alerter() -> MagicMock:
    """An Alerter whose send() succeeds."""
    mock = MagicMock()
    mock.send = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def service(test_settings, mailer, alerter, fixed_now) -> SubmissionService:
    """SubmissionService wired to mocks and a temp upload dir."""
    dispatcher = AlertDispatcher(
        alerter,
        test_settings.alert_phone_numbers,
        inbox=test_settings.alert_inbox,
    )
    return SubmissionService(
        mailer=mailer,
        alerts=dispatcher,
        config=test_settings,
        clock=lambda: fixed_now,
    )
