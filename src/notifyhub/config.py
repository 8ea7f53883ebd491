"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with NOTIFYHUB_ prefix.
No config files — just env vars (12-factor app style).
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All gateway configuration. Set via NOTIFYHUB_* env vars."""

    # Redis backplane
    redis_url: str = "redis://localhost:6379/0"
    bus_reconnect_initial_delay: float = 0.5  # seconds
    bus_reconnect_max_delay: float = 30.0

    # Auth (access tokens are issued by the core API, we only verify them)
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3001

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "NOTIFYHUB_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment != "development"
            and self.jwt_secret == "change-me-in-production"
        ):
            raise ValueError(
                "NOTIFYHUB_JWT_SECRET must be set to the core API's access "
                "token secret in non-development environments."
            )
        return self


# Singleton: import this everywhere
settings = Settings()
