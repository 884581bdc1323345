"""
Centralized configuration with environment variable overrides.

Booking rules, model settings, backend endpoints and credentials are all
configurable here. Nothing is hardcoded in tool or pipeline logic.
"""

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    raw = os.getenv(env_var, default).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class BookingConfig:
    """Calendar booking rules shared by the availability and booking engines."""

    business_timezone: str = os.getenv("BUSINESS_TIMEZONE", "Asia/Hong_Kong")
    class_slot_max_hours: float = _safe_float("CLASS_SLOT_MAX_HOURS", "4")
    default_duration_minutes: int = _safe_int("DEFAULT_SERVICE_DURATION", "60")
    default_capacity: int = _safe_int("DEFAULT_SERVICE_CAPACITY", "20")
    booking_window_days: int = _safe_int("BOOKING_WINDOW_DAYS", "14")
    send_invites: bool = _safe_bool("CALENDAR_SEND_INVITES", "true")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)


@dataclass(frozen=True)
class ModelConfig:
    """LLM settings for the classifier and responder stages."""

    llm_model: str = os.getenv("LLM_MODEL", "x-ai/grok-4.1-fast")
    api_base_url: str = os.getenv("LLM_API_BASE_URL", "https://openrouter.ai/api/v1")
    api_key: str = os.getenv("LLM_API_KEY", "")
    http_referer: str = os.getenv("LLM_HTTP_REFERER", "")
    app_title: str = os.getenv("LLM_APP_TITLE", "storechat")
    classifier_temperature: float = _safe_float("CLASSIFIER_TEMPERATURE", "0.1")
    classifier_max_tokens: int = _safe_int("CLASSIFIER_MAX_TOKENS", "500")
    classifier_context_messages: int = _safe_int("CLASSIFIER_CONTEXT_MESSAGES", "6")
    responder_temperature: float = _safe_float("RESPONDER_TEMPERATURE", "0.5")
    responder_max_tokens: int = _safe_int("RESPONDER_MAX_TOKENS", "400")
    responder_context_messages: int = _safe_int("RESPONDER_CONTEXT_MESSAGES", "6")


@dataclass(frozen=True)
class BackendConfig:
    """Backend-as-a-service endpoints for store rows and sheet tabs."""

    supabase_url: str = os.getenv("SUPABASE_URL", "")
    service_role_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    sheet_function_path: str = os.getenv("SHEET_FUNCTION_PATH", "/functions/v1/google-sheet")
    stores_table: str = os.getenv("STORES_TABLE", "stores")


@dataclass(frozen=True)
class CalendarConfig:
    """Google Calendar REST settings."""

    api_base_url: str = os.getenv(
        "GOOGLE_CALENDAR_API_URL", "https://www.googleapis.com/calendar/v3"
    )
    access_token: str = os.getenv("GOOGLE_CALENDAR_ACCESS_TOKEN", "")


# Per-million-token pricing used for the debug cost estimate.
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "anthropic/claude-sonnet-4.5": (3.0, 15.0),
    "anthropic/claude-haiku-4.5": (1.0, 5.0),
    "google/gemini-2.5-flash": (0.30, 2.50),
    "deepseek/deepseek-chat-v3.1": (0.27, 1.10),
    "openai/gpt-4o-mini": (0.15, 0.60),
    "x-ai/grok-4.1-fast": (0.20, 0.50),
}


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    booking: BookingConfig = field(default_factory=BookingConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    external_timeout_sec: float = _safe_float("EXTERNAL_TIMEOUT_SECONDS", "15")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "*")
    service_name: str = os.getenv("SERVICE_NAME", "storechat")

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    try:
        ZoneInfo(config.booking.business_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"BUSINESS_TIMEZONE is not a known timezone: {config.booking.business_timezone!r}"
        ) from None
    if config.booking.class_slot_max_hours <= 0:
        raise ValueError(
            f"CLASS_SLOT_MAX_HOURS must be > 0, got {config.booking.class_slot_max_hours}"
        )
    if config.booking.default_duration_minutes < 1:
        raise ValueError(
            "DEFAULT_SERVICE_DURATION must be >= 1, "
            f"got {config.booking.default_duration_minutes}"
        )
    if config.booking.default_capacity < 1:
        raise ValueError(
            f"DEFAULT_SERVICE_CAPACITY must be >= 1, got {config.booking.default_capacity}"
        )
    if config.booking.booking_window_days < 1:
        raise ValueError(
            f"BOOKING_WINDOW_DAYS must be >= 1, got {config.booking.booking_window_days}"
        )

    for name, value in [
        ("CLASSIFIER_TEMPERATURE", config.model.classifier_temperature),
        ("RESPONDER_TEMPERATURE", config.model.responder_temperature),
    ]:
        if not 0.0 <= value <= 2.0:
            raise ValueError(f"{name} must be between 0.0 and 2.0, got {value}")

    for name, value in [
        ("CLASSIFIER_MAX_TOKENS", config.model.classifier_max_tokens),
        ("RESPONDER_MAX_TOKENS", config.model.responder_max_tokens),
        ("CLASSIFIER_CONTEXT_MESSAGES", config.model.classifier_context_messages),
        ("RESPONDER_CONTEXT_MESSAGES", config.model.responder_context_messages),
    ]:
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")

    if config.external_timeout_sec <= 0:
        raise ValueError(
            f"EXTERNAL_TIMEOUT_SECONDS must be > 0, got {config.external_timeout_sec}"
        )


def require_credentials(config: AppConfig) -> None:
    """Fail fast at boot when secrets needed by the pipeline are missing."""
    missing = [
        env_var
        for env_var, value in [
            ("LLM_API_KEY", config.model.api_key),
            ("SUPABASE_URL", config.backend.supabase_url),
            ("SUPABASE_SERVICE_ROLE_KEY", config.backend.service_role_key),
            ("GOOGLE_CALENDAR_ACCESS_TOKEN", config.calendar.access_token),
        ]
        if not value
    ]
    if missing:
        raise ValueError(f"Missing required configuration: {', '.join(missing)}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    from storechat.logging_context import install_request_id_filter

    install_request_id_filter()
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
