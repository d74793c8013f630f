from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./app.db"

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Base URL this API is reachable at (used to build signed object URLs)
    public_base_url: str = "http://localhost:8001"

    log_level: str = "INFO"

    # Object storage: "local" (files under storage_dir) or "supabase"
    storage_backend: str = "local"
    # Root folder for local storage (empty = backend/uploads)
    storage_dir: str = ""
    video_bucket: str = "videos"
    thumbnail_bucket: str = "thumbnails"

    # Signed playback URL lifetime (seconds)
    signed_url_ttl_seconds: int = 3600

    # Max wait for the entitlement check / URL signing before denying playback
    playback_timeout_seconds: float = 10.0

    # Supabase storage (only when storage_backend = "supabase")
    supabase_url: str = ""
    supabase_service_key: str = ""

    # PayPal checkout
    paypal_client_id: str = ""
    paypal_client_secret: str = ""
    paypal_api_url: str = "https://api-m.sandbox.paypal.com"
    subscription_price: str = "3.00"
    subscription_currency: str = "USD"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
