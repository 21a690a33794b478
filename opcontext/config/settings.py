"""Application settings, read from the environment (prefix ``OPCONTEXT_``) or ``.env``."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for adapters and logging"""

    model_config = SettingsConfigDict(
        env_prefix="OPCONTEXT_",
        env_file=".env",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Database (SQLAlchemy async URL)
    database_url: str = "sqlite+aiosqlite:///./opcontext.db"
    database_echo: bool = False

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_max_connections: int = 10
    cache_redis_db: int = 2
    cache_key_prefix: str = "opcontext:cache:"
    cache_default_ttl: Optional[int] = 3600
    notifier_redis_db: int = 3
    notifier_channel_prefix: str = "opcontext:notices:"

    # Celery
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"


settings = Settings()
