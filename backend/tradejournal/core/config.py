"""
Configuration management.
Loads from config_local.py (gitignored) for secrets, with defaults.
"""
from typing import Optional, List

# Try to import local config (gitignored)
try:
    from tradejournal.config_local import (
        DATABASE_DSN,
        SESSION_COOKIE_NAME,
        SESSION_SECRET,
        LLM_API_KEY,
        LLM_BASE_URL,
        DEFAULT_LLM_MODEL,
        SMTP_HOST,
        SMTP_PORT,
        SMTP_USE_SSL,
        SMTP_USERNAME,
        SMTP_PASSWORD,
        SMTP_FROM_EMAIL,
        SMTP_FROM_NAME,
        FRONTEND_BASE_URL,
        CRON_SECRET,
    )
    # Optional tuning knobs, older config_local files may not define them
    try:
        from tradejournal.config_local import (
            SESSION_MAX_AGE_SECONDS,
            ANNOUNCEMENT_BATCH_SIZE,
            HEALTH_CHECK_TIMEOUT_SECONDS,
            MARKET_DATA_ENABLED,
            LOG_LEVEL,
            CORS_ORIGINS,
        )
    except ImportError:
        SESSION_MAX_AGE_SECONDS = 86400
        ANNOUNCEMENT_BATCH_SIZE = 50
        HEALTH_CHECK_TIMEOUT_SECONDS = 5.0
        MARKET_DATA_ENABLED = True
        LOG_LEVEL = "INFO"
        CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
except ImportError:
    # Fallback defaults (SQLite so the app boots locally; secrets must be set for production)
    DATABASE_DSN: str = "sqlite:///./tradejournal.db"
    SESSION_COOKIE_NAME: str = "tradejournal_session"
    SESSION_SECRET: Optional[str] = None
    SESSION_MAX_AGE_SECONDS: int = 86400
    LLM_API_KEY: Optional[str] = None
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    DEFAULT_LLM_MODEL: str = "gpt-4o-mini"
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USE_SSL: bool = True
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = None
    SMTP_FROM_NAME: str = "Trader's Journal"
    FRONTEND_BASE_URL: str = "http://localhost:3000"
    CRON_SECRET: Optional[str] = None  # None = cron endpoints reject every call
    ANNOUNCEMENT_BATCH_SIZE: int = 50
    HEALTH_CHECK_TIMEOUT_SECONDS: float = 5.0
    MARKET_DATA_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]


def get_settings():
    """Return settings object (for FastAPI dependency injection)."""
    return type("Settings", (), {
        "database_dsn": DATABASE_DSN,
        "session_cookie_name": SESSION_COOKIE_NAME,
        "session_secret": SESSION_SECRET,
        "session_max_age_seconds": SESSION_MAX_AGE_SECONDS,
        "llm_api_key": LLM_API_KEY,
        "llm_base_url": LLM_BASE_URL,
        "default_llm_model": DEFAULT_LLM_MODEL,
        "smtp_host": SMTP_HOST,
        "smtp_port": SMTP_PORT,
        "smtp_use_ssl": SMTP_USE_SSL,
        "smtp_username": SMTP_USERNAME,
        "smtp_password": SMTP_PASSWORD,
        "smtp_from_email": SMTP_FROM_EMAIL,
        "smtp_from_name": SMTP_FROM_NAME,
        "frontend_base_url": FRONTEND_BASE_URL,
        "cron_secret": CRON_SECRET,
        "announcement_batch_size": ANNOUNCEMENT_BATCH_SIZE,
        "health_check_timeout_seconds": HEALTH_CHECK_TIMEOUT_SECONDS,
        "market_data_enabled": MARKET_DATA_ENABLED,
        "log_level": LOG_LEVEL,
        "cors_origins": CORS_ORIGINS,
    })()
