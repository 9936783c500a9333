"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://shop:shop_dev_password@db:5432/shop"

    # Authentication (upstream gateway -> this service)
    service_api_key: str = "dev-api-key-change-in-production"

    # Shop
    currency: str = "VND"

    # Payment gateway (VNPay-style redirect flow)
    payment_tmn_code: str = "DEVTMN01"
    payment_secret_key: str = "dev-payment-secret-change-in-production"
    payment_host: str = "https://sandbox.vnpayment.vn"
    payment_return_url: str = "http://localhost:3000/payment/success"
    payment_locale: str = "vn"

    # Transaction conflict retries
    transaction_max_attempts: int = 3
    transaction_backoff_seconds: float = 0.05

    # Logging
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
