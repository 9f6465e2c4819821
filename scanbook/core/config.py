"""Application configuration via Pydantic settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration object loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "ScanBook API"
    debug: bool = False
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    database_url: str = Field("sqlite+aiosqlite:///./scanbook.db", alias="DATABASE_URL")

    keycloak_auth_server_url: str = Field("http://localhost:8080", alias="KEYCLOAK_AUTH_SERVER_URL")
    keycloak_realm: str = Field("scan-appointment", alias="KEYCLOAK_REALM")
    keycloak_client_id: str = Field("scan-appointment-client", alias="KEYCLOAK_CLIENT_ID")
    keycloak_admin_role: str = Field("admin", alias="KEYCLOAK_ADMIN_ROLE")
    keycloak_timeout_seconds: float = Field(5.0, alias="KEYCLOAK_TIMEOUT_SECONDS")
    keycloak_jwks_ttl_seconds: int = Field(60 * 60, alias="KEYCLOAK_JWKS_TTL_SECONDS")

    default_timezone: str = Field("Asia/Kolkata", alias="DEFAULT_TIMEZONE")
    max_slots_per_scan: int = Field(50, alias="MAX_SLOTS_PER_SCAN")
    available_dates_window_months: int = Field(3, alias="AVAILABLE_DATES_WINDOW_MONTHS")

    @property
    def keycloak_issuer(self) -> str:
        return f"{self.keycloak_auth_server_url.rstrip('/')}/realms/{self.keycloak_realm}"


@lru_cache(1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings = get_settings()
