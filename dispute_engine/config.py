"""Application configuration via pydantic-settings."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Dispute Lifecycle Engine"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "disputes"
    postgres_password: str = Field(default="disputes_secret")
    postgres_db: str = "disputes"
    db_pool_size: int = 20
    db_max_overflow: int = 10

    @computed_field
    @property
    def database_url(self) -> str:
        """Async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Celery sweeps (UTC)
    celery_queue: str = "disputes"
    overdue_sweep_minute: int = 5
    escalation_sweep_hour: int = 2

    # Regulatory windows (days from dispute creation)
    regulatory_deadline_days: dict[str, int] = {
        "UNAUTHORIZED": 60,
        "FRAUD": 60,
        "DUPLICATE": 60,
        "BILLING_ERROR": 60,
        "NON_RECEIPT": 90,
        "QUALITY_ISSUES": 90,
    }
    default_regulatory_deadline_days: int = 60
    investigation_window_days: int = 30

    # Money
    currency: str = "USD"
    max_provisional_credit: Decimal = Decimal("5000.00")
    min_provisional_credit: Decimal = Decimal("10.00")
    provisional_credit_eligibility_minimum: Decimal = Decimal("25.00")
    partial_provisional_credit_rate: Decimal = Decimal("0.80")
    high_value_threshold: Decimal = Decimal("1000.00")
    documentation_amount_threshold: Decimal = Decimal("500.00")
    chargeback_processing_fee: Decimal = Decimal("15.00")

    # Chargeback network
    chargeback_gateway: Literal["network", "manual"] = "manual"
    chargeback_network_url: Optional[str] = None
    chargeback_network_api_key: Optional[str] = None
    chargeback_gateway_timeout_seconds: float = 10.0

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]

    def deadline_days_for(self, dispute_type: str) -> int:
        """Regulatory window in days for a dispute type."""
        return self.regulatory_deadline_days.get(
            dispute_type, self.default_regulatory_deadline_days
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
