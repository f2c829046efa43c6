"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API starts without any configuration; in production override at least
``SECRET_KEY`` and ``STRIPE_SECRET_KEY``.
"""

import os
from dataclasses import dataclass


def _as_bool(value: str) -> bool:
    return value.lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "HomeFix API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = _as_bool(os.getenv("DEBUG", "false"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    # Tokens live for a week unless configured otherwise.
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Path to the SQLite database.  Relative paths are resolved against
    # the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "homefix.db")

    # Comma‑separated list of origins allowed to call the API from a browser.
    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:3000,https://homefix.vercel.app")

    # Card processing.  Without a secret key every gateway call fails with
    # ``gateway_not_configured``.
    stripe_secret_key: str = os.getenv("STRIPE_SECRET_KEY", "")
    stripe_api_base: str = os.getenv("STRIPE_API_BASE", "https://api.stripe.com")
    payment_currency: str = os.getenv("PAYMENT_CURRENCY", "usd")
    payment_gateway_timeout: float = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "30"))

    # When true, booking status changes must follow the lifecycle table
    # (pending -> confirmed -> in_progress -> completed, cancel from any
    # non‑terminal state).  When false any participant may set any status.
    strict_status_transitions: bool = _as_bool(os.getenv("STRICT_STATUS_TRANSITIONS", "true"))

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before importing this module.
settings = Settings()
