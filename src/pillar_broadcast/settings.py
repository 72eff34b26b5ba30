"""
pillar_broadcast.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets (DB credential, identity API key, SMTP password) from repr/logging.
- Report missing required configuration so the request path can fail closed.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Two credential tiers are configured separately and never mixed:
    - Caller tier: identity provider URL + caller-scoped API key (token verification only)
    - Service tier: `database_url` (admin allow-list, employee directory, audit log)
    """

    model_config = SettingsConfigDict(env_prefix="PILLAR_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and dev tokens.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "pillar-broadcast"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Persistence (service credential)
    database_url: str = Field(default="sqlite+aiosqlite:///./pillar_broadcast.db", repr=False)

    # Identity (caller credential)
    identity_mode: Literal["jwt", "http"] = "jwt"
    identity_url: str = ""
    identity_api_key: str = Field(default="", repr=False)

    jwt_alg: str = "HS256"
    jwt_issuer: str = "pillar-broadcast"
    jwt_audience: str = "pillar-broadcast-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Mail transport. Without credentials, broadcasts are simulated.
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_username: str = ""
    smtp_password: str = Field(default="", repr=False)
    smtp_sender: str = ""
    smtp_max_connections: int = 10

    # Abuse controls
    rate_limit_window_seconds: float = 15 * 60
    rate_limit_max_requests: int = 10
    max_body_bytes: int = 50_000
    min_token_length: int = 10

    # Deadlines
    identity_timeout_seconds: float = 5.0
    send_timeout_seconds: float = 5.0
    batch_timeout_seconds: float = 15.0

    # Recipient caps: fetch more than we send so growth never silently truncates a send.
    recipient_fetch_limit: int = 1000
    recipient_send_limit: int = 500

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_username and self.smtp_password)

    def missing_required(self) -> list[str]:
        missing: list[str] = []
        if not self.database_url:
            missing.append("database_url")
        if self.identity_mode == "http":
            if not self.identity_url:
                missing.append("identity_url")
            if not self.identity_api_key:
                missing.append("identity_api_key")
        elif not self.jwt_secret:
            missing.append("jwt_secret")
        return missing


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Limits and timeouts live here rather than as module constants so deployments can
# tune them without code changes and tests can shrink them.
