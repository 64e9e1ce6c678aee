"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = Field(
        "mongodb://localhost:27017/restaurants-app",
        description="MongoDB connection string; the path names the database",
    )

    # HTTP
    host: str = Field("0.0.0.0", description="Bind address")
    port: int = Field(8080, description="Listen port")
    allowed_origins: str = Field("*", description="Comma-separated CORS origins")

    # App
    log_level: str = Field("INFO", description="Root log level")

    @property
    def allowed_origins_list(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()
