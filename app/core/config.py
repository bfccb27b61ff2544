# app/core/config.py

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose injects them
    # from the root .env file), so no env_file is configured here.
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"

    # --- Database URLs ---
    DATABASE_URL_PROD: str
    DATABASE_URL_LOCAL: str

    # --- Auth ---
    JWT_SECRET: str

    # --- Payment gateway (order creation + signature verification) ---
    PAYMENT_GATEWAY_BASE_URL: str = "https://api.razorpay.com/v1"
    PAYMENT_GATEWAY_KEY_ID: str
    PAYMENT_GATEWAY_KEY_SECRET: str
    PAYMENT_GATEWAY_MAX_RETRIES: int = 3
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_CURRENCY: str = "INR"

    # --- Credentials ---
    QR_SIGNING_SECRET: str
    OTP_TTL_MINUTES: int = 30
    QR_SCAN_WINDOW_HOURS: int = 12

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # --- Dynamic Properties ---
    @property
    def DATABASE_URL(self) -> str:
        return (
            self.DATABASE_URL_LOCAL if self.ENV == "local" else self.DATABASE_URL_PROD
        )


# Create a single instance of the settings
settings = Settings()
