# /helpdesk_bot/config/settings.py

import sys
import os
from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings

_DEFAULT_CARD_TEMPLATE = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "cards", "ticket.json"
)


class Settings(BaseSettings):
    # Intent classifier (LUIS-style endpoint; the query text is appended as &q=)
    classifier_url: str
    classifier_timeout_seconds: float = 5.0
    intent_confidence_threshold: float = 0.3

    # Knowledge base search index
    search_service_name: str
    search_index_name: str
    search_api_key: str
    search_api_version: str = "2016-09-01"
    search_timeout_seconds: float = 10.0

    # Ticket API
    ticket_submission_url: str = "http://localhost:8000"
    ticket_timeout_seconds: float = 10.0

    # Dialog sessions
    session_backend: str = "memory"
    redis_url: str = "redis://localhost:6379"
    session_ttl_seconds: Optional[int] = None
    session_lock_timeout_seconds: int = 60
    session_lock_wait_seconds: float = 15.0
    max_prompt_retries: Optional[int] = None

    # Cards
    card_template_path: str = _DEFAULT_CARD_TEMPLATE

    # Security
    channel_secret: Optional[str] = None
    api_key: Optional[str] = None

    # Deployment
    environment: str = "production"
    workers: int = 1
    cors_allowed_origins: str = ""

    # Observability
    log_level: str = "INFO"
    alerting_webhook_url: Optional[str] = None
    alert_cooldown_seconds: int = 300

    # App Metadata & Limits
    api_version: str = "v1"
    rate_limit_per_minute: int = 120
    trust_forwarded_for: bool = False

    # ---------------- Validators ---------------- #

    @field_validator("ticket_submission_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("session_backend")
    @classmethod
    def session_backend_must_be_known(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("SESSION_BACKEND must be 'memory' or 'redis'")
        return v

    @field_validator("intent_confidence_threshold")
    @classmethod
    def threshold_in_unit_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("INTENT_CONFIDENCE_THRESHOLD must be between 0 and 1")
        return v

    @field_validator("max_prompt_retries")
    @classmethod
    def retries_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("MAX_PROMPT_RETRIES must be at least 1 when set")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def validate_environment(settings_obj: Settings):
    try:
        if not settings_obj.classifier_url.startswith(("http://", "https://")):
            raise ValueError("CLASSIFIER_URL must be an http(s) URL")

        if not settings_obj.ticket_submission_url.startswith(("http://", "https://")):
            raise ValueError("TICKET_SUBMISSION_URL must be an http(s) URL")

        if not os.path.isfile(settings_obj.card_template_path):
            raise ValueError(f"Card template not found at {settings_obj.card_template_path}")

        if settings_obj.workers > 1 and settings_obj.session_backend == "memory":
            raise ValueError("WORKERS > 1 requires SESSION_BACKEND=redis; in-memory sessions are per process")

        if settings_obj.environment == "production" and settings_obj.session_backend != "redis":
            print("--- [WARNING] In-memory sessions do not survive restarts; set SESSION_BACKEND=redis")

        return settings_obj

    except Exception as e:
        print(f"--- [ERROR] Environment validation failed: {e}")
        sys.exit(1)


settings = Settings()
validate_environment(settings)
