from typing import Optional, Set

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "BookStop API"
    VERSION: str = "v1"
    DESCRIPTION: str = "A Rest API for tracking books, reviews and reading lists"

    API_PREFIX: str = "/api"

    # --- Database & JWT Secrets ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./bookstop.db"
    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    TOKEN_ISSUER: str = "bookstop"
    TOKEN_AUDIENCE: str = "bookstop:users"

    # Database Pool Settings
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_TIMEOUT: int = 30

    # --- Redis Configuration ---
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_TTL: int = 300
    RATE_LIMIT_ENABLED: bool = True

    # --- HTTP ---
    CORS_ORIGINS: str = "http://localhost:5173,https://booklog-client.vercel.app"
    ALLOWED_HOSTS: str = "*"
    MAX_REQUEST_SIZE: int = 10 * 1024 * 1024

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOGGING_EXCLUDE_PATHS: Set[str] = {"/health", "/favicon.ico"}

    # --- External book APIs ---
    OPENLIBRARY_URL: str = "https://openlibrary.org"
    OPENLIBRARY_COVERS_URL: str = "https://covers.openlibrary.org"
    BOOKCOVER_API_URL: str = "https://bookcover.longitood.com/bookcover"
    GOOGLE_BOOKS_URL: str = "https://www.googleapis.com/books/v1/volumes"
    GOOGLE_BOOKS_API_KEY: Optional[str] = None
    EXTERNAL_API_TIMEOUT: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
