"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_anon_key: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_image_model: str = "gpt-image-1"
    openai_store: bool = False
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_starter_price_id: str | None = None
    stripe_regular_price_id: str | None = None
    stripe_pro_price_id: str | None = None
    stripe_monthly_price_id: str | None = None
    free_uses: int = 10
    limit_uses: bool = True
    subscription_credits: int = 80
    local_store_dir: str = ".recipesnap"
    recipe_api_url: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def supabase_configured(self) -> bool:
        """Return True when both Supabase URL and a key are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def supabase_key(self) -> str | None:
        """Prefer the service key, falling back to the anon key."""
        return self.supabase_service_key or self.supabase_anon_key

    @property
    def stripe_pack_prices(self) -> dict[str, str | None]:
        """Stripe price ids keyed by credit-pack name."""
        return {
            "starter": self.stripe_starter_price_id,
            "regular": self.stripe_regular_price_id,
            "pro": self.stripe_pro_price_id,
        }
