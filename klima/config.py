"""
Application configuration using Pydantic settings.

This module contains all configuration settings for the Klima map API,
loaded from environment variables with sensible defaults.
"""

import os
from typing import List, Optional, Union

from pydantic import Field, field_validator, ValidationInfo, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden with environment variables.
    """

    # API Configuration
    API_PREFIX: str = "/api"
    SERVER_NAME: str = "Klima Map API"
    VERSION: str = "1.0.0"
    DEBUG: bool = True

    # CORS: the map client is a static site served from one of these origins.
    # Kept as Union[str, List] so pydantic-settings does not JSON-decode a plain string.
    BACKEND_CORS_ORIGINS: Union[str, List[str]] = (
        "http://localhost:3000,http://localhost:5500,http://127.0.0.1:5500,http://localhost:8080"
    )

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def split_cors_origins(cls, v: Union[str, List[str], None]) -> List[str]:
        """Accept a comma separated string or a list; blank means no CORS."""
        if not v:
            return []
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        raise ValueError(f"Invalid CORS origins format: {v!r}")

    # PostGIS database (read-only for this service)
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "klima"
    POSTGRES_PORT: int = 5432

    SQLALCHEMY_DATABASE_URI: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """
        Resolve the async database URL.

        Precedence: an explicit SQLALCHEMY_DATABASE_URI, then DATABASE_URL
        (hosting platforms hand out ``postgres://`` URLs), then the
        POSTGRES_* parts. A POSTGRES_DB ending in ``.db`` selects a local
        SQLite file.
        """
        if isinstance(v, str) and v:
            return v

        database_url = os.getenv("DATABASE_URL")
        if database_url:
            for scheme in ("postgres://", "postgresql://"):
                if database_url.startswith(scheme):
                    return "postgresql+asyncpg://" + database_url[len(scheme):]
            return database_url

        parts = info.data
        db_name = parts.get("POSTGRES_DB")
        if db_name and db_name.endswith(".db"):
            return f"sqlite+aiosqlite:///{db_name}"

        user, password = parts.get("POSTGRES_USER"), parts.get("POSTGRES_PASSWORD")
        host, port = parts.get("POSTGRES_SERVER"), parts.get("POSTGRES_PORT")
        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db_name}"

    # Connection pool and timeouts (enforced by the driver, not by the query layer)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_COMMAND_TIMEOUT: float = 30.0  # seconds
    DB_STATEMENT_TIMEOUT_MS: int = 30000

    # Spatial output
    OUTPUT_SRID: int = 4326
    CLIMATE_LAYER_LIMIT: int = 500  # climate layer has ~90k polygons

    # Redis Configuration (Optional)
    REDIS_ENABLED: bool = False
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    CACHE_TTL_CHOROPLETH: int = 86400  # historical data changes rarely

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW: int = 60  # seconds

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


# Create global settings instance
settings = Settings()
