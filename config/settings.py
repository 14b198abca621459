"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    app_name: str = "Auth API"

    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./auth_api.db"  # postgresql+asyncpg://... in production
    database_echo: bool = False
    auto_create_tables: bool = True

    # ── Server ───────────────────────────────────────────────────────────
    port: int = 8000
    host: str = "0.0.0.0"
    debug: bool = False                 # exposes exception text in 500 responses
    cors_origins: list = ["*"]
    api_prefix: str = ""

    # ── Passwords & tokens ───────────────────────────────────────────────
    bcrypt_rounds: int = 12
    token_bytes: int = 40               # entropy of the token secret
    token_name: str = "auth_token"
    token_expiry_minutes: Optional[int] = None   # None = tokens never expire

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


config = Settings()
