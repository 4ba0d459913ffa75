"""Application settings loaded from environment variables / .env."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ─────────────────────────────────────────────────────────
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = ""
    db_database: str = "koerperanalyse_app"
    db_pool_size: int = 10
    db_timeout_seconds: float = 10.0

    # ── Sessions & passwords ─────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_expiry_hours: int = 1
    pbkdf2_iterations: int = 600_000

    # ── Chat proxy ───────────────────────────────────────────────────────
    chat_api_key: str = ""
    chat_api_url: str = "https://api.openai.com/v1/chat/completions"
    chat_model: str = "gpt-4o-mini"
    chat_timeout_seconds: float = 30.0

    # ── Server ───────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: list = ["*"]

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache
def load_settings() -> Settings:
    """Return the process-wide settings, read once."""
    return Settings()
