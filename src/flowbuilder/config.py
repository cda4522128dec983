from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

from .workflow.vocabulary import AnalysisTuning

ROOT_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ------------------------------------------------------------------
    # Generative service (OpenRouter chat completions)
    # ------------------------------------------------------------------
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    site_url: str = "http://localhost:3000"  # sent as HTTP-Referer
    default_model: str = "openai/gpt-4o"
    temperature: float = 0.3
    max_tokens: int = 8000
    generation_timeout_seconds: float = 60.0

    # ------------------------------------------------------------------
    # Package cache
    # ------------------------------------------------------------------
    # Unset → in-process cache, fine for a single worker
    redis_url: Optional[str] = None         # redis://localhost:6379/0
    cache_ttl_seconds: int = 86400
    cache_key_prefix: str = "flowbuilder:workflow"
    cache_max_entries: int = 1024  # in-process cache only

    # ------------------------------------------------------------------
    # Storage / API
    # ------------------------------------------------------------------
    workflows_dir: Path = ROOT_DIR / "workflows"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"

    # Complexity thresholds, latency weights and keyword lists.
    # Override individually, e.g. ANALYSIS__ENTERPRISE_PENALTY_SECONDS=20
    analysis: AnalysisTuning = AnalysisTuning()

    class Config:
        env_file = ".env"
        env_nested_delimiter = "__"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
