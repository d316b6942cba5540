from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "THNK"
    app_version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"

    # Generative backend
    openai_api_key: str | None = None
    research_model: str = "gpt-4o-mini"
    research_temperature: float = 0.2
    generative_timeout_seconds: float = 30.0

    # Candidate extraction
    candidate_confidence_threshold: float = 0.7
    max_candidates: int = 6

    # Probe / fetch
    probe_timeout_seconds: float = 6.0
    fetch_timeout_seconds: float = 10.0
    fetch_403_retries: int = 1
    fetch_retry_delay_seconds: float = 1.0
    fetch_max_chars: int = 8000

    # Analysis
    analysis_sample_chars: int = 3000
    analysis_max_payload_chars: int = 100_000

    # Enrichment fan-out
    enrichment_concurrency: int = 3
    enrichment_pause_seconds: float = 0.25

    # Fallback catalog override (YAML)
    fallback_sources_path: str | None = None

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "thnk"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
