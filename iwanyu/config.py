from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration, read from the environment (or a local .env file).
    Only the Supabase URL and service role key are mandatory.
    """

    SUPABASE_URL: str
    SUPABASE_SERVICE_ROLE_KEY: str
    # Used for password sign-in, sign-up and realtime; falls back to the service key.
    SUPABASE_ANON_KEY: str | None = None

    PRODUCT_IMAGES_BUCKET: str = "product-images"
    VENDOR_DOCUMENTS_BUCKET: str = "vendor-documents"

    APP_NAME: str = "Iwanyu API"
    API_PREFIX: str = "/api"
    ALLOWED_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    PASSWORD_RESET_REDIRECT_URL: str | None = None

    CURRENCY: str = "RWF"
    TAX_RATE: float = 0.0
    DEFAULT_SHIPPING_AMOUNT: float = 0.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
