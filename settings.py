# settings.py
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    ENV: Literal["dev", "staging", "prod"] = "dev"

    # -----------------------
    # DB
    # -----------------------
    DATABASE_URL: str = ""
    DB_POOL_MAX_CONN: int = Field(default=10, ge=1)
    DB_STATEMENT_TIMEOUT_MS: int = Field(default=5000, ge=100)

    # -----------------------
    # Trigger surface secrets
    # -----------------------
    ADMIN_API_KEY: str = ""
    CRON_SECRET: str = ""

    # -----------------------
    # Payout provider (chosen once per process)
    # -----------------------
    PAYOUT_PROVIDER: str = "mock"  # "mock" | "simulated" | "netopia" | "transfer"
    PAYOUT_HTTP_TIMEOUT_S: float = 20.0

    NETOPIA_API_KEY: str = ""
    NETOPIA_MERCHANT_ID: str = ""
    NETOPIA_API_URL: str = "https://api.netopia.com"

    TRANSFER_BANK_API_KEY: str = ""
    TRANSFER_IBAN_SENDER: str = ""
    TRANSFER_BANK_API_URL: str = "https://api.transferbank.ro"

    SIMULATED_MIN_LATENCY_MS: int = Field(default=1000, ge=0)
    SIMULATED_MAX_LATENCY_MS: int = Field(default=3000, ge=0)
    SIMULATED_FAILURE_RATE: float = Field(default=0.05, ge=0.0, le=1.0)

    # -----------------------
    # Retry executor (1s / 2s / 4s)
    # -----------------------
    PAYOUT_RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    PAYOUT_RETRY_BASE_DELAY_MS: int = Field(default=1000, ge=0)
    PAYOUT_RETRY_MAX_DELAY_MS: int = Field(default=4000, ge=0)
    PAYOUT_RETRY_BACKOFF_MULTIPLIER: float = Field(default=2.0, ge=1.0)

    # processing longer than this is reported by the integrity check
    PAYOUT_STUCK_AFTER_MINUTES: int = Field(default=30, ge=1)

    # -----------------------
    # Failure alerts
    # -----------------------
    ADMIN_EMAILS: str = "admin@pots.ro"
    EMAIL_PROVIDER: str = "resend"  # "resend" | "smtp" | "log"
    EMAIL_FROM: str = "Pots.ro <no-reply@pots.ro>"
    RESEND_API_KEY: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""

    # -----------------------
    # Workers
    # -----------------------
    WORKER_POLL_SECONDS: int = Field(default=300, ge=1)
    RECONCILE_INTERVAL_SECONDS: int = Field(default=300, ge=1)


def admin_emails(value: str | None = None) -> list[str]:
    raw = settings.ADMIN_EMAILS if value is None else value
    return [e.strip() for e in (raw or "").split(",") if e.strip()]


def _missing_provider_keys(s: Settings) -> list[str]:
    provider = (s.PAYOUT_PROVIDER or "").strip().lower()
    if provider == "netopia":
        required = {
            "NETOPIA_API_KEY": s.NETOPIA_API_KEY,
            "NETOPIA_MERCHANT_ID": s.NETOPIA_MERCHANT_ID,
        }
    elif provider == "transfer":
        required = {
            "TRANSFER_BANK_API_KEY": s.TRANSFER_BANK_API_KEY,
            "TRANSFER_IBAN_SENDER": s.TRANSFER_IBAN_SENDER,
        }
    else:
        required = {}
    return [k for k, v in required.items() if not (v or "").strip()]


def validate_env_settings(s: Settings | None = None) -> None:
    """
    Fail fast outside dev when something the payout engine needs is missing.
    Dev never fails: the provider factory falls back to the simulated provider.
    """
    s = s or settings
    env = (s.ENV or "dev").strip().lower()
    if env == "dev":
        return

    missing: list[str] = []
    if not (s.DATABASE_URL or "").strip():
        missing.append("DATABASE_URL")
    if not (s.ADMIN_API_KEY or "").strip():
        missing.append("ADMIN_API_KEY")
    if not (s.CRON_SECRET or "").strip():
        missing.append("CRON_SECRET")
    missing.extend(_missing_provider_keys(s))

    if missing:
        raise RuntimeError(f"Missing required settings for ENV={env}: {', '.join(missing)}")


settings = Settings()
