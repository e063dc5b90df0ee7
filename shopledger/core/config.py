"""
Shop Ledger Configuration
Core settings for the sale balance and recovery ledger service
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from pathlib import Path


class Settings(BaseSettings):
    """Application settings"""

    # Application Info
    APP_NAME: str = "Shop Ledger API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./shopledger.db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]  # Change in production
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")
    LOG_FILE: str = "app.log"
    ERROR_LOG_FILE: str = "error.log"
    LOG_TO_FILE: bool = True

    # Business Logic Settings
    DEFAULT_DUE_DAYS: int = 30
    SALE_NUMBER_PREFIX: str = "SALE"
    SALE_NUMBER_WIDTH: int = 6

    # Financial Precision
    CURRENCY_DECIMAL_PLACES: int = 2

    # Pagination
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 200

    # Dashboard
    DASHBOARD_RECENT_RECOVERIES: int = 10
    DASHBOARD_TOP_OVERDUE: int = 5

    # Sales statistics
    STATISTICS_TOP_CUSTOMERS: int = 5
    STATISTICS_DAILY_DAYS: int = 30

    # API Configuration
    API_V1_STR: str = "/api/v1"
    DOCS_URL: str = "/docs"
    REDOC_URL: str = "/redoc"
    OPENAPI_URL: str = "/openapi.json"

    @field_validator("DEFAULT_DUE_DAYS")
    @classmethod
    def validate_due_days(cls, v: int) -> int:
        """Grace period must be a whole number of days"""
        if v < 0:
            raise ValueError("DEFAULT_DUE_DAYS cannot be negative")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: Optional[str]) -> str:
        return (v or "INFO").upper()

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# Global settings instance
settings = Settings()

# Database connection string for SQLAlchemy
DATABASE_URL = settings.DATABASE_URL
