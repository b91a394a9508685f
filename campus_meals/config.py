"""
Configuration management for Campus Meals
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Campus Meals"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./campus_meals.db"

    # Session tokens
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Google sign-in
    GOOGLE_CLIENT_ID: str = ""

    # Campus assigned to users provisioned on first login
    DEFAULT_CAMPUS_ID: Optional[int] = None

    # Wall-clock zone for slot windows, deadlines and QR expiry
    APP_TIMEZONE: str = "Asia/Kolkata"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    return Settings()
