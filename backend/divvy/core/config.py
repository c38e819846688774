"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from decimal import Decimal
from typing import List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    APP_NAME: str = "Divvy"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Database
    DATABASE_URL: str = "sqlite:///./divvy.db"
    DB_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = False  # Create missing tables on startup
    
    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:5173"]
    
    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v
    
    # Exchange Rate
    FX_API_URL: str = "https://api.exchangeratesapi.io/v1/latest"
    FX_API_KEY: str = ""
    FX_BASE_CURRENCY: str = "USD"  # All stored rates are quoted as 1 base = rate X
    FX_STALE_HOURS: int = 8
    FX_TIMEOUT_SECONDS: float = 10.0
    
    # Budget
    DEFAULT_DISPLAY_CURRENCY: str = "USD"
    DEFAULT_MONTHLY_BUDGET: Decimal = Decimal("0")
    FORECAST_MONTHS: int = 2  # Months shown after the current one in the budget-vs-actual series
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
