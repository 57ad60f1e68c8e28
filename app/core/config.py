# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (needed for receipt uploads / signed URLs)
      - CART_REDIS_URL (durable cart storage; in-process storage otherwise)
    """

    PROJECT_NAME: str = "Storefront Checkout API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Receipts (private bucket, read back through signed URLs)
    RECEIPTS_BUCKET: str = "receipts"
    RECEIPT_URL_TTL_SECONDS: int = 3600
    RECEIPT_MAX_BYTES: int = 10 * 1024 * 1024

    # Cart storage
    CART_STORAGE_KEY: str = "cart-storage"
    CART_REDIS_URL: str | None = None
    CART_TTL_SECONDS: int = 30 * 24 * 3600

    # Checkout: remove already-written rows/blobs when a later step fails
    CHECKOUT_COMPENSATE_ON_FAILURE: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
