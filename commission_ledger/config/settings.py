"""
Environment configuration for the commission ledger.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    APP_NAME: str = Field(default="Commission Ledger", alias="PROJECT_NAME")
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Database configuration
    DATABASE_URL: str = "sqlite:///./commission_ledger.db"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False

    # Monitoring and logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"
    LOG_FILE: Optional[str] = None

    # Distribution defaults, overridden by the active commission setting row
    COMMISSION_DIRECT_RATE: Decimal = Decimal("0.10")
    COMMISSION_INDIRECT_RATE: Decimal = Decimal("0.05")
    COMMISSION_SETTLE_DELAY_DAYS: int = 7
    WITHDRAW_MIN_AMOUNT: Decimal = Decimal("10.00")
    WITHDRAW_FEE_RATE: Decimal = Decimal("0.006")
    WITHDRAW_MAX_PENDING: int = 5

    INVITE_BASE_URL: str = "https://example.com/invite"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        populate_by_name = True
        extra = "ignore"  # This will ignore extra fields from .env

    # Validators
    @field_validator('LOG_LEVEL')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in {"json", "text"}:
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v

    @field_validator(
        'COMMISSION_DIRECT_RATE', 'COMMISSION_INDIRECT_RATE', 'WITHDRAW_FEE_RATE'
    )
    @classmethod
    def validate_rate(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError("Rates must be between 0 and 1")
        return v

    @field_validator('COMMISSION_SETTLE_DELAY_DAYS', 'WITHDRAW_MAX_PENDING')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value must not be negative")
        return v

    @model_validator(mode="after")
    def validate_combined_rate(self) -> "Settings":
        if self.COMMISSION_DIRECT_RATE + self.COMMISSION_INDIRECT_RATE > Decimal("0.5"):
            raise ValueError("Combined commission rate must not exceed 0.5")
        return self

    def get_database_url(self) -> str:
        """Return the configured database URL"""
        return self.DATABASE_URL

    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
