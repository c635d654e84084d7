"""
Configuration settings for the Quote Tracker service.

Uses pydantic-settings for environment variable management with validation.
Supports multi-environment deployments (development, staging, production).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection configuration."""
    
    model_config = SettingsConfigDict(env_prefix="DB_")
    
    host: str = "localhost"
    port: int = 5432
    name: str = "quote_tracker"
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    pool_size: int = 10
    max_overflow: int = 5
    
    # Full SQLAlchemy URL, overrides the discrete fields when set
    url: str | None = None
    
    @property
    def async_url(self) -> str:
        """Construct async database URL."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:"
            f"{self.password.get_secret_value()}@"
            f"{self.host}:{self.port}/{self.name}"
        )


class EmailSettings(BaseSettings):
    """Mail provider configuration."""
    
    model_config = SettingsConfigDict(env_prefix="EMAIL_")
    
    api_key: SecretStr | None = None
    api_url: str = "https://api.resend.com/emails"
    from_address: str = "contacto@hexagono.xyz"
    admin_address: str = "admin@hexagono.xyz"
    reply_to: str = "contacto@hexagono.xyz"
    timeout_seconds: float = 10.0


class NotificationSettings(BaseSettings):
    """Delivery, retry and reminder sweep configuration."""
    
    model_config = SettingsConfigDict(env_prefix="NOTIFY_")
    
    max_retries: int = 3
    initial_retry_delay_seconds: float = 1.0
    max_retry_delay_seconds: float = 30.0
    reminder_threshold_hours: int = 48
    reminder_batch_size: int = 5
    reminder_batch_pause_seconds: float = 1.0
    reminder_sweep_limit: int = 100
    high_priority_threshold: int = 300000


class QuoteSettings(BaseSettings):
    """Quote lifecycle settings."""
    
    model_config = SettingsConfigDict(env_prefix="QUOTE_")
    
    number_prefix: str = "COT"
    number_issue_attempts: int = 5
    strict_transitions: bool = False
    strict_feature_validation: bool = False
    estimated_response_hours: int = 48


class CompanySettings(BaseSettings):
    """Contact details printed on every outgoing message."""
    
    model_config = SettingsConfigDict(env_prefix="COMPANY_")
    
    name: str = "Hexágono Web"
    email: str = "contacto@hexagono.xyz"
    whatsapp: str = "+54 11 2378-2307"
    website: str = "https://hexagono.xyz"


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Application
    app_name: str = "Quote Tracker"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    api_prefix: str = "/api"
    public_base_url: str = "http://localhost:3000"
    
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    
    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]
    
    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    
    # Scheduled jobs
    cron_secret: SecretStr = SecretStr("change-me")
    scheduler_enabled: bool = False
    reminder_sweep_hour: int = 9
    
    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    quotes: QuoteSettings = Field(default_factory=QuoteSettings)
    company: CompanySettings = Field(default_factory=CompanySettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    Uses lru_cache to ensure settings are only loaded once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()


# Convenience export
settings = get_settings()
