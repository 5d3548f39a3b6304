from pathlib import Path

from pydantic_settings import BaseSettings
from functools import lru_cache

# Backend root (the directory holding alembic.ini and seed_data.py)
_BACKEND_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = f"sqlite:///{_BACKEND_ROOT / 'tracker.db'}"
    SQL_ECHO: bool = False

    # JWT
    JWT_SECRET: str = "change-this-secret-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 480  # 8 hours

    # App
    APP_NAME: str = "Project Tracker"
    DEBUG: bool = True
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # CORS: override with env var CORS_ORIGINS as a JSON array
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
