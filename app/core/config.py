# app/core/config.py

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Values come from the process environment (Docker Compose passes the root .env).
    model_config = SettingsConfigDict(extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # --- Production URLs (for inside Docker) ---
    DATABASE_URL_PROD: Optional[str] = None
    KAFKA_BOOTSTRAP_SERVERS_PROD: Optional[str] = None

    # --- Local Development URLs (for running locally) ---
    DATABASE_URL_LOCAL: str = "sqlite:///./collaborations.db"
    KAFKA_BOOTSTRAP_SERVERS_LOCAL: Optional[str] = None

    # Other secrets
    JWT_SECRET: str = "change-me"
    INTERNAL_API_KEY: str = "change-me-internal"

    # --- Notifications ---
    NOTIFICATIONS_TOPIC: str = "collaboration.notifications"

    # --- Payment gateway (Stripe) ---
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_API_VERSION: str = "2023-10-16"
    STRIPE_MAX_NETWORK_RETRIES: int = 2
    PAYMENT_CURRENCY: str = "usd"
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 15.0

    # --- Platform fees ---
    HOST_MARKUP_PERCENT: float = 15.0
    CREATOR_FEE_PERCENT: float = 15.0
    POST_FOR_STAY_FEE_CENTS: int = 9900

    # --- Offer lifecycle ---
    OFFER_EXPIRY_DAYS: int = 14
    OFFER_EXPIRY_WARNING_HOURS: int = 48
    EXPIRE_SWEEP_INTERVAL_MINUTES: int = 5
    CONTENT_DEADLINE_SWEEP_INTERVAL_MINUTES: int = 60
    SCHEDULER_ENABLED: bool = True

    # Tracking links handed to creators once an agreement is executed
    AFFILIATE_LINK_BASE_URL: str = "https://creatorstays.com/r"

    # --- Dynamic Properties ---
    # These properties return the correct URL based on the ENV
    @property
    def DATABASE_URL(self) -> str:
        if self.ENV == "local" or not self.DATABASE_URL_PROD:
            return self.DATABASE_URL_LOCAL
        return self.DATABASE_URL_PROD

    @property
    def KAFKA_BOOTSTRAP_SERVERS(self) -> Optional[str]:
        return (
            self.KAFKA_BOOTSTRAP_SERVERS_LOCAL
            if self.ENV == "local"
            else self.KAFKA_BOOTSTRAP_SERVERS_PROD
        )


# Create a single instance of the settings
settings = Settings()
