"""
Configuration module for the device interaction history service.

Loads and validates environment variables using Pydantic settings.
"""
import logging
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Database
    DATABASE_URL: str
    
    # Devices
    DEVICE_LIMIT: int = 100
    DEVICE_LOGIN_ENABLED: bool = True
    
    # Queries
    DETAIL_QUERY_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_PAGE_LIMIT: int = 10
    
    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS_ORIGINS string into list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]
    
    def validate_config(self) -> None:
        """Validate critical configuration values."""
        if not self.DATABASE_URL:
            raise ValueError("DATABASE_URL must be set")
        
        if self.DEVICE_LIMIT < 0:
            raise ValueError("DEVICE_LIMIT must not be negative")
        
        if self.DETAIL_QUERY_TIMEOUT_SECONDS <= 0:
            raise ValueError("DETAIL_QUERY_TIMEOUT_SECONDS must be positive")
        
        if self.DEFAULT_PAGE_LIMIT <= 0:
            raise ValueError("DEFAULT_PAGE_LIMIT must be positive")
        
        if not isinstance(logging.getLevelName(self.LOG_LEVEL.upper()), int):
            raise ValueError(f"Unknown LOG_LEVEL: {self.LOG_LEVEL}")


# Global settings instance
settings = Settings()

# Validate on import
settings.validate_config()
