"""Application configuration using pydantic-settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_AUTH_SECRET = "dev-secret-key"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    DATABASE_URL: str = "sqlite:///./noc_dashboard.db"
    APP_NAME: str = "NOC Dashboard Service"
    ENVIRONMENT: str = "development"

    AUTH_SECRET: str = DEFAULT_AUTH_SECRET
    AUTH_COOKIE_NAME: str = "auth-token"
    AUTH_TOKEN_TTL_MS: int = 24 * 60 * 60 * 1000
    AUTH_COOKIE_MAX_AGE: int = 24 * 60 * 60

    ROUTER_MONITOR_URL: str = "wss://isolir.gmdp.net.id/ws/"
    ROUTER_MONITOR_ENABLED: bool = True
    ROUTER_MONITOR_RECONNECT_DELAY: float = 5.0
    ROUTER_HISTORY_LIMIT: int = 60

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("AUTH_SECRET")
    @classmethod
    def blank_secret_means_unset(cls, value: str) -> str:
        return value if value.strip() else DEFAULT_AUTH_SECRET

    @property
    def secure_cookies(self) -> bool:
        """Whether the session cookie carries the Secure flag."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def uses_default_secret(self) -> bool:
        return self.AUTH_SECRET == DEFAULT_AUTH_SECRET


settings = Settings()
