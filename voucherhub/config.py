from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    DATABASE_PRIVATE_URL: Optional[str] = None
    DB_CONNECT_TIMEOUT: int = 10  # seconds
    DB_STATEMENT_TIMEOUT_MS: int = 5000
    DB_POOL_TIMEOUT: int = 10  # seconds waiting for a pooled connection
    SKIP_DB_INIT: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Calendar-day policy for quota and reporting
    BUSINESS_TIMEZONE: str = "UTC"

    # Claim defaults (used when the settings table has no value)
    DEFAULT_CLAIM_ENABLED: bool = True
    DEFAULT_DAILY_LIMIT: int = 1000
    DEFAULT_DISCOUNT_AMOUNT: int = 10000  # minor currency units

    # Allocation
    MAX_RESERVATION_ATTEMPTS: int = 5
    CODE_SELECTION_POLICY: str = "random"  # random | first
    ALLOW_FABRICATED_CODES_ON_EXHAUSTION: bool = False
    FABRICATED_CODE_LENGTH: int = 8

    # Access keys (routes are open when unset)
    ADMIN_API_KEY: Optional[str] = None
    CASHIER_API_KEY: Optional[str] = None

    # CORS
    CORS_ORIGINS: list = ["*"]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
