"""
app/core/config.py

Centralised configuration loaded from environment variables.
Use a .env file locally; the hosting platform injects these at runtime.
"""

import tempfile
from typing import Annotated, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    # ── Application ────────────────────────────────────────────────────────────
    app_name: str = "Engineers India Submission API"
    app_version: str = "1.0.0"
    service_name: str = "Engineers India Functions"
    debug: bool = False

    # ── Mail relay (SMTP) ──────────────────────────────────────────────────────
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_tls_mode: str = "starttls"     # starttls | ssl | none
    smtp_timeout_seconds: float = 20.0
    mail_from: str = ""                 # falls back to smtp_user when empty

    # ── Recipients (comma-separated in the environment) ────────────────────────
    contact_recipients: Annotated[List[str], NoDecode] = ["info@engineersindia.in"]
    quote_recipients: Annotated[List[str], NoDecode] = ["info@engineersindia.in"]

    # ── Instant-message alerts ─────────────────────────────────────────────────
    alert_webhook_url: str = ""         # empty disables alerts
    alert_phone_numbers: Annotated[List[str], NoDecode] = []
    alert_inbox: str = "info@engineersindia.in"
    alert_timeout_seconds: float = 10.0

    # ── Submission pipeline ────────────────────────────────────────────────────
    upload_dir: str = tempfile.gettempdir()
    parse_timeout_seconds: float = 30.0
    parse_chunk_size: int = 64 * 1024   # bytes fed to the parser per step

    # ── Presentation ───────────────────────────────────────────────────────────
    display_timezone: str = "Asia/Kolkata"
    support_phone: str = "+91 9150400011"

    # ── CORS ───────────────────────────────────────────────────────────────────
    cors_origins: Annotated[List[str], NoDecode] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator(
        "contact_recipients",
        "quote_recipients",
        "alert_phone_numbers",
        "cors_origins",
        mode="before",
    )
    @classmethod
    def split_comma_separated(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def sender_address(self) -> str:
        """Address used in the From header of every notification."""
        return self.mail_from or self.smtp_user


# Single shared instance; import this everywhere.
settings = Settings()
