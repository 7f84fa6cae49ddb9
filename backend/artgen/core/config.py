"""Configuration management using pydantic-settings."""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "css-art-generator"
    default_mood: str = "serene"

    # Server settings
    backend_host: str = "localhost"
    backend_port: int = 8000
    frontend_port: int = 3000

    # Prompt policy. Heuristic thresholds, tune per deployment.
    min_prompt_length: int = 3
    max_prompt_length: int = 500
    min_alpha_ratio: float = 0.3
    min_words: int = 2
    max_repeated_chars: int = 10
    reject_bot_user_agents: bool = False

    # Quota
    rate_limit_per_window: int = 10
    rate_limit_window_seconds: int = 3600

    # Generation counter
    counter_backend: Literal["memory", "file"] = "memory"
    counter_path: str = "data/generation-counter.json"
    recent_log_size: int = 1000

    # Provenance
    fingerprint_algorithm: Literal["rolling", "sha256"] = "rolling"

    # Downloadable artifacts
    artworks_dir: str = "data/artworks"
    save_artifacts: bool = True


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
