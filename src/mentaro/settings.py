"""
mentaro.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Own the platform commission rate used by every revenue computation.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration (prefix `MENTARO_`).
    Defaults are safe for local dev; prod must override the JWT secret and database URL.
    """

    model_config = SettingsConfigDict(env_prefix="MENTARO_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "mentaro-api"
    log_level: str = "INFO"
    # JSON for log shippers; set false for a human-readable console while developing.
    log_json: bool = True

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "mentaro-api"
    jwt_audience: str = "mentaro-web"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    jwt_ttl_minutes: int = 7 * 24 * 60
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./mentaro.db"

    # Revenue: share of each completed payment retained by the platform.
    platform_commission_rate: Decimal = Field(default=Decimal("0.10"), ge=0, le=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The commission rate lives here (not inline in reports) so a change applies to
# counters, earnings and analytics at once.
