"""Runtime settings for the supplement scanner."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Service credentials, model choice and scan tuning, read from the env."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "high"
    openai_store: bool = False
    enrichment_function_url: str | None = None
    product_images_bucket: str = "supplement-images"
    recognition_timeout_seconds: float = 90.0
    enrichment_timeout_seconds: float | None = 60.0
    image_max_width: int = 800
    image_jpeg_quality: int = 80
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def resolved_enrichment_url(self) -> str:
        """Return the enrichment endpoint, defaulting to the Supabase function."""
        if self.enrichment_function_url:
            return self.enrichment_function_url
        return f"{self.supabase_url.rstrip('/')}/functions/v1/enrich-supplement-info"
