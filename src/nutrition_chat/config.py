"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.3
    model_timeout_seconds: float = 30
    supabase_url: str
    supabase_service_key: str
    profile_id: str = "default"
    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "NutritionChat/1.0 (nutrition-chat)"
    off_page_size: int = 3
    lookup_timeout_seconds: float = 15
    date_window_days: int = 365
    completed_grace_seconds: float = 3
    rejected_grace_seconds: float = 2
    inter_action_delay_seconds: float = 0
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
