from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment, EventPublisherType, LockProviderType


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # App Settings
    app_name: str = "billing-engine"
    app_version: str = "0.1.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "billing"
    db_use_nullpool: bool = (
        False  # True for workers (sequential), False for shared pools
    )
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # RabbitMQ
    rabbitmq_host: str = "localhost"
    rabbitmq_port: int = 5672
    rabbitmq_username: str = "guest"
    rabbitmq_password: str = "guest"
    rabbitmq_vhost: str = ""
    events_exchange_name: str = "billing.events"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @property
    def redis_connection_url(self) -> str:
        """Construct Redis URL from components."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # OpenTelemetry
    otel_service_name: str = "billing-engine"
    otel_service_version: str = "0.1.0"

    # Axiom (export disabled when no token is configured)
    axiom_token: str = ""
    axiom_dataset: str = ""

    # Billing
    billing_tax_rate: Decimal = Decimal("0.10")  # Flat placeholder rate
    invoice_due_days: int = 7
    past_due_grace_days: int = 7
    payment_reminder_days: int = 3
    usage_retention_days: int = 90
    churn_window_days: int = 30
    usage_floor_at_zero: bool = False
    subscription_lock_ttl_seconds: int = 60
    proration_strategy: str = "none"  # Key registered with ProrationStrategyFactory

    # Scheduler
    scheduler_tick_seconds: int = 60

    # Environment-aware properties
    @property
    def lock_provider(self) -> LockProviderType:
        """Auto-select lock backend based on environment."""
        return (
            LockProviderType.MEMORY
            if self.environment == Environment.LOCAL
            else LockProviderType.REDIS
        )

    @property
    def event_publisher(self) -> EventPublisherType:
        """Auto-select event publisher based on environment."""
        return (
            EventPublisherType.MEMORY
            if self.environment == Environment.LOCAL
            else EventPublisherType.RABBITMQ
        )


settings = Settings()
