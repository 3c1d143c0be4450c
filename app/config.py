"""
Codrel Risk Configuration — pydantic-settings based.

All settings are read from environment variables or .env file.
Scoring constants (weights, thresholds) live in RiskScoringConfig; only the
tunables that operators change per deployment are exposed here.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Scoring ──
    risk_half_life_days: float = Field(
        default=30.0, gt=0, description="Recency half-life for event decay (days)"
    )
    risk_frequency_saturation: int = Field(
        default=20, gt=0, description="Event count at which frequency score saturates"
    )

    # ── Retrieval ──
    retrieval_url: str = Field(
        default="http://localhost:8001",
        description="Base URL of the vector search service",
    )
    retrieval_api_key: str | None = Field(
        default=None, description="Bearer token for the vector search service"
    )
    retrieval_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for a single retrieval call"
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        description="Whole-request budget for context building; unfinished files degrade",
    )
    need_context_limit: int = Field(default=6, gt=0)
    deep_context_limit: int = Field(default=12, gt=0)
    advanced_context_limit: int = Field(default=25, gt=0)

    # ── LLM (incident analysis) ──
    groq_api_key: str | None = Field(
        default=None, description="Groq API key; incident analysis is disabled without it"
    )
    incident_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model identifier for incident analysis completions",
    )
    llm_timeout: int = Field(default=30, description="LLM request timeout in seconds")
    llm_max_retries: int = Field(default=3, description="Max LLM retry attempts")
    llm_temperature: float = Field(default=0.1, description="LLM temperature")
    llm_max_tokens: int = Field(default=2048, description="Token cap per completion")

    # ── Decisions ──
    alert_risk_threshold: float = Field(
        default=0.6,
        description="Warn decisions above this score also trigger an alert",
    )
    decision_log_path: str = Field(
        default="decisions.jsonl", description="Path to JSON-lines decision log file"
    )
    publish_url: str | None = Field(
        default=None,
        description="Webhook that receives risk-events / voice-alerts; log only when unset",
    )

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance, imported by other modules
settings = Settings()
