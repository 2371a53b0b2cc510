"""
Application configuration using Pydantic Settings.
All config is loaded from environment variables / .env file.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── App ──────────────────────────────────────────────
    APP_NAME: str = "notepilot"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"  # comma-separated
    APP_URL: str = "http://localhost:8000"  # public URL of this API (OAuth callbacks)
    FRONTEND_URL: str = "http://localhost:3000"  # where OAuth callbacks redirect the browser

    # ── Supabase ─────────────────────────────────────────
    SUPABASE_URL: str
    SUPABASE_KEY: str  # anon/public key
    SUPABASE_SERVICE_KEY: str = ""  # service_role key (scheduler + email webhook)

    # ── Security ─────────────────────────────────────────
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 1440  # 24 hours

    # ── LLM (Provider-Agnostic) ──────────────────────────
    LLM_PROVIDER: str = "gemini"  # gemini | openai | groq
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_API_KEY: str = ""
    LLM_TEMPERATURE: float = 0.2

    # ── Agent ────────────────────────────────────────────
    AGENT_MAX_MODEL_TURNS: int = 5  # model calls per run before the loop is closed
    AGENT_RECURSION_LIMIT: int = 12  # graph steps, must cover 2 * turns + finish
    DEFAULT_TIMEZONE: str = "UTC"  # used when the caller sends no timezone
    CONTEXT_NOTES_LIMIT: int = 20
    CONTEXT_REMINDERS_LIMIT: int = 20
    CONTEXT_TODOS_LIMIT: int = 20
    NOTE_PREVIEW_CHARS: int = 100

    # ── Composio (Google Calendar connector) ─────────────
    COMPOSIO_API_KEY: str = ""

    # ── Email (Resend) ───────────────────────────────────
    RESEND_API_KEY: str = ""
    RESEND_WEBHOOK_SECRET: str = ""
    EMAIL_DOMAIN: str = ""
    EMAIL_WHITELIST: str = ""  # comma-separated sender addresses

    # ── Zalo Bot (Push Notifications) ────────────────────
    ZALO_BOT_TOKEN: str = ""
    ZALO_CHAT_ID: str = ""  # fallback recipient when users.push_chat_id is empty

    # ── Background ───────────────────────────────────────
    REMINDER_CHECK_INTERVAL_SECONDS: int = 60

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }

    @property
    def email_whitelist(self) -> set[str]:
        return {
            email.strip().lower()
            for email in self.EMAIL_WHITELIST.split(",")
            if email.strip()
        }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance (singleton)."""
    return Settings()
