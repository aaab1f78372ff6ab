import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class Settings:
    # ✅ Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./intavia.db")

    # ✅ Security
    secret_key: str = os.getenv("SECRET_KEY", "change-me")
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = _env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60)
    monitoring_api_key: Optional[str] = os.getenv("MONITORING_API_KEY")

    # ✅ Stripe
    stripe_secret_key: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = os.getenv("STRIPE_WEBHOOK_SECRET")
    stripe_max_network_retries: int = _env_int("STRIPE_MAX_NETWORK_RETRIES", 2)
    payment_retry_invoice_limit: int = _env_int("PAYMENT_RETRY_INVOICE_LIMIT", 5)

    # ✅ Google Calendar
    google_client_id: Optional[str] = os.getenv("GOOGLE_CLIENT_ID")
    google_client_secret: Optional[str] = os.getenv("GOOGLE_CLIENT_SECRET")
    token_refresh_attempts: int = _env_int("TOKEN_REFRESH_ATTEMPTS", 3)
    token_refresh_window_hours: int = _env_int("TOKEN_REFRESH_WINDOW_HOURS", 48)

    # ✅ Email (Resend)
    resend_api_key: Optional[str] = os.getenv("RESEND_API_KEY")
    email_from: str = os.getenv("EMAIL_FROM", "Intavia <noreply@intavia.app>")
    sales_email: str = os.getenv("SALES_EMAIL", "sales@intavia.app")

    # ✅ OpenAI
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    # ✅ App
    app_name: str = os.getenv("APP_NAME", "Intavia")
    app_base_url: str = os.getenv("APP_BASE_URL", "http://localhost:3000")
    storage_root: str = os.getenv("STORAGE_ROOT", "./storage")
    signed_url_ttl_seconds: int = _env_int("SIGNED_URL_TTL_SECONDS", 3600)
    http_timeout_seconds: float = _env_float("HTTP_TIMEOUT_SECONDS", 10.0)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: Optional[str] = os.getenv("LOG_DIR")

    # ✅ Monitoring windows
    monitor_trial_window_days: int = _env_int("MONITOR_TRIAL_WINDOW_DAYS", 3)
    monitor_expiring_window_days: int = _env_int("MONITOR_EXPIRING_WINDOW_DAYS", 7)
    monitor_past_due_grace_days: int = _env_int("MONITOR_PAST_DUE_GRACE_DAYS", 14)
    reminder_lead_minutes: int = _env_int("REMINDER_LEAD_MINUTES", 60)
    invite_lifetime_days: int = _env_int("INVITE_LIFETIME_DAYS", 30)


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide settings once."""
    return Settings()
