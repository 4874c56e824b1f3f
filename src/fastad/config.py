from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    data_dir: str = "data"
    log_level: str = "INFO"

    # Keys
    openai_api_key: str | None = None
    gemini_api_key: str | None = None

    # Models
    openai_text_model: str = "gpt-4"
    openai_image_model: str = "dall-e-3"
    gemini_image_model: str = "imagen-3.0-generate-002"

    # Providers: openai|gemini|mock for images, placeholder for video
    image_provider: str = "openai"
    video_provider: str = "placeholder"

    # Fixed output configuration for every dispatch
    image_size: str = "1024x1024"
    image_quality: str = "standard"
    video_latency_seconds: float = 3.0

    # Prompt refinement
    refine_debounce_ms: int = 1000
    refine_min_chars: int = 10
    refine_max_tokens: int = 200

    # Record store: json (local files under data_dir) or supabase
    record_store: str = "json"
    supabase_url: str | None = None
    supabase_key: str | None = None

    # Free plan limit for users without a subscription row
    default_usage_limit: int = 10


settings = Settings()
