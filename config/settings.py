"""Application configuration using pydantic-settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration loaded from environment / .env file."""

    # ── Text generation (OpenAI / Azure OpenAI) ───────────────────────────────
    # When AZURE_OPENAI_ENDPOINT is set the Azure client is used; an empty
    # AZURE_OPENAI_API_KEY switches to Entra ID (DefaultAzureCredential).
    openai_api_key: str = Field(default="", description="Public OpenAI API key")
    openai_model: str = Field(default="gpt-4o")
    azure_openai_endpoint: str = Field(default="")
    azure_openai_api_key: str = Field(default="")
    azure_openai_api_version: str = Field(default="2024-10-21")
    azure_openai_deployment: str = Field(default="gpt-4o")
    llm_timeout_seconds: float = Field(default=120.0)
    llm_connect_timeout_seconds: float = Field(default=10.0)
    selection_max_tokens: int = Field(default=2000)
    extraction_max_tokens: int = Field(default=8000)

    # ── Site mapping / page fetching ──────────────────────────────────────────
    # Without FIRECRAWL_API_KEY the direct HTTP client (sitemap.xml + HTML
    # parsing) is used instead.
    firecrawl_api_key: str = Field(default="")
    firecrawl_api_url: str = Field(default="https://api.firecrawl.dev/v1")
    scrape_timeout_seconds: float = Field(default=30.0)
    map_timeout_seconds: float = Field(default=60.0)
    scrape_max_retries: int = Field(default=2)
    scrape_delay_seconds: float = Field(default=1.0)
    site_map_limit: int = Field(default=200)

    # ── Logo search / palette ─────────────────────────────────────────────────
    brave_search_api_key: str = Field(default="")
    brave_image_search_url: str = Field(
        default="https://api.search.brave.com/res/v1/images/search"
    )
    image_search_timeout_seconds: float = Field(default=15.0)
    palette_timeout_seconds: float = Field(default=15.0)
    logo_max_results: int = Field(default=6)

    # ── Pipeline limits ───────────────────────────────────────────────────────
    default_max_pages: int = Field(default=20)
    max_candidate_links: int = Field(default=100)
    homepage_char_budget: int = Field(default=15_000)
    corpus_char_budget: int = Field(default=80_000)
    fetch_batch_size: int = Field(default=5)
    event_buffer_size: int = Field(default=256)

    # ── Cache ─────────────────────────────────────────────────────────────────
    cache_ttl_hours: float = Field(default=24.0)

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
