"""
Flow Puzzle - Backend Configuration

Настройки приложения через environment variables.
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from functools import lru_cache
from typing import Literal


DEFAULT_LEVELS_DIR = Path(__file__).parent / "levels"


class Settings(BaseSettings):
    """Настройки приложения."""

    # App
    APP_NAME: str = "Flow Puzzle"
    DEBUG: bool = False
    API_PREFIX: str = "/api/v1"
    ENVIRONMENT: Literal["development", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Rate Limiting
    RATE_LIMIT_GENERATE: str = "30/minute"
    RATE_LIMIT_LEVEL: str = "60/minute"

    # Generator
    PLACEMENT_MAX_ATTEMPTS: int = 100
    GENERATION_MAX_ATTEMPTS: int = 5000
    LEVEL_GENERATION_MAX_ATTEMPTS: int = 2000
    MIN_COVERAGE: float = 0.8

    # Level progression
    BASE_GRID_SIZE: int = 5
    MAX_GRID_SIZE: int = 12
    BASE_COLORS: int = 3
    MAX_COLORS: int = 10

    # Level catalog
    LEVELS_DIR: Path = DEFAULT_LEVELS_DIR
    LEVEL_CACHE_SIZE: int = 256

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"LOG_LEVEL must be a logging level name, got: {value}")
        return level

    @field_validator("MIN_COVERAGE")
    @classmethod
    def validate_min_coverage(cls, value: float) -> float:
        if not 0.0 < value <= 1.0:
            raise ValueError(f"MIN_COVERAGE must be in (0, 1], got: {value}")
        return value

    @field_validator(
        "PLACEMENT_MAX_ATTEMPTS",
        "GENERATION_MAX_ATTEMPTS",
        "LEVEL_GENERATION_MAX_ATTEMPTS",
        "LEVEL_CACHE_SIZE",
    )
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError(f"Must be a positive integer, got: {value}")
        return value

    @model_validator(mode="after")
    def validate_progression(self) -> "Settings":
        if not 2 <= self.BASE_GRID_SIZE <= self.MAX_GRID_SIZE:
            raise ValueError("Grid sizes must satisfy 2 <= BASE_GRID_SIZE <= MAX_GRID_SIZE")
        if not 1 <= self.BASE_COLORS <= self.MAX_COLORS:
            raise ValueError("Color counts must satisfy 1 <= BASE_COLORS <= MAX_COLORS")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Парсит CORS_ORIGINS в список."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """Получить настройки (кэшируется)."""
    return Settings()


settings = get_settings()
