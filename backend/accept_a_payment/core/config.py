from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    stripe_secret_key: str = ""
    stripe_publishable_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_api_version: str = "2024-06-20"
    domain: str = "http://localhost:4242"
    calculate_tax: bool = False
    order_amount: int = 5999
    webhook_tolerance: int = 300  # seconds
    allowed_origins: str = "*"
    max_body_size: int = 1_048_576  # 1 MiB
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("stripe_webhook_secret")
    @classmethod
    def _blank_secret_is_unset(cls, value: str | None) -> str | None:
        # An empty STRIPE_WEBHOOK_SECRET disables signing, same as leaving it out
        return value or None

    @property
    def webhook_signing_enabled(self) -> bool:
        return self.stripe_webhook_secret is not None


@lru_cache
def get_settings() -> Settings:
    return Settings()
