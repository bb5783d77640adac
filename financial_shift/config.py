"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Service
    service_name: str = "financial-shift"
    log_level: str = "INFO"

    # Entity backend
    entity_api_base: str = "http://localhost:8001"
    entity_api_token: str | None = None
    http_timeout_seconds: float = 10.0

    # Rate limiter: 20 token burst, 2 tokens/s (~120 req/min)
    rate_limit_max_tokens: int = 20
    rate_limit_refill_rate: float = 2.0

    # Deduplicator read cache
    dedup_cache_ttl_seconds: float = 5.0

    # Batching
    batch_size: int = 10
    batch_delay_seconds: float = 0.1
    batch_chunk_size: int = 5

    # Retry policy
    read_max_retries: int = 3
    read_backoff_base: float = 1.0
    mutation_max_retries: int = 2
    mutation_backoff_base: float = 2.0
    retry_max_delay: float = 10.0
    retry_jitter: float = 0.3  # Fraction of the delay added at random

    # Calculations
    payoff_max_months: int = 600
    default_withholding_rate: float = 0.25


settings = Settings()
