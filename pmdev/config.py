"""Application settings."""

from __future__ import annotations

import json
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pmdev.constants import PACKAGE_DIR

FOURTEEN_DAYS_MS = 1000 * 60 * 60 * 24 * 14


class Settings(BaseSettings):
    """Central configuration entrypoint for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # Server
    base_url: str = "http://127.0.0.1:8000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    enable_tracing: bool = False
    otlp_endpoint: str | None = None
    otlp_headers: str | None = None

    # Metrics endpoint authentication
    metrics_username: str = "prometheus"
    metrics_password: str | None = None

    # Branding
    brand_name: str = "PMDev.ovh"

    # Email delivery
    email_backend: Literal["resend", "smtp"] = "resend"
    resend_api_key: str | None = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_timeout_seconds: float = 10.0
    mail_from: str | None = None
    mail_to: str | None = None

    # SMTP backend
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_pass: str | None = None
    smtp_starttls: bool = True

    # Contact form throttling (fixed window per source address)
    contact_rate_limit: int = 3
    contact_rate_window_seconds: float = 60.0
    contact_rate_sweep_seconds: float = 300.0

    # Demo notice overlay
    notice_enabled: bool = True
    notice_storage_key: str = "overlay_demo_seen"
    notice_storage: Literal["session", "local"] = "local"
    notice_ttl_ms: int | None = FOURTEEN_DAYS_MS
    notice_duration_ms: int = 7000
    notice_suppress_param: str = "no-overlay"
    notice_reset_param: str = "reset-overlay"
    notice_reduce_motion: bool = False

    # Data
    data_dir: str = str(PACKAGE_DIR / "data")
    site_content_file: str = "site.yaml"

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: str | list[str] | None) -> list[str]:
        """Normalize ALLOWED_ORIGINS env input into a list."""
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in raw.split(",") if item.strip()]
        return []

    @field_validator("notice_ttl_ms", mode="before")
    @classmethod
    def parse_notice_ttl(cls, value: int | str | None) -> int | None:
        """An empty NOTICE_TTL_MS means the seen-record never expires."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        """Expose allowed CORS origins for middleware wiring."""
        return self.allowed_origins

    def _mail_settings(self) -> dict[str, str | None]:
        if self.email_backend == "smtp":
            transport = {"SMTP_HOST": self.smtp_host}
        else:
            transport = {"RESEND_API_KEY": self.resend_api_key}
        return {**transport, "MAIL_FROM": self.mail_from, "MAIL_TO": self.mail_to}

    def required_mail_settings(self) -> list[str]:
        """Env names the configured email backend cannot work without."""
        return list(self._mail_settings())

    def missing_mail_settings(self) -> list[str]:
        """Env names of required delivery settings that are unset or blank."""
        return [
            name
            for name, value in self._mail_settings().items()
            if not (value and value.strip())
        ]


settings = Settings()
