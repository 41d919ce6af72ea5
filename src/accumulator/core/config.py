"""
Invocation Batch Accumulator - Configuration
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    # Application
    APP_NAME: str = "Invocation Batch Accumulator"
    VERSION: str = "1.0.0"
    ENV: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8083
    WORKERS: int = 2
    LOG_LEVEL: str = "INFO"
    # JSON logs; unset means JSON only when ENV is production
    LOG_JSON: bool | None = None

    # Batching
    TARGET_BATCH_SIZE: int = Field(default=256, ge=1)
    # Hard cap on leaves per API request
    MAX_BATCH_SIZE: int = Field(default=4096, ge=1)
    VERIFY_PROOFS_ON_BUILD: bool = True

    # Metrics
    METRICS_ENABLED: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
