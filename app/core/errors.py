"""
Risk Engine Errors — Exception taxonomy for scoring, enrichment and ingestion.

Scoring errors fail fast for the file being scored.
Enrichment errors are recovered by the context router.
Ingestion errors skip the single incident that caused them.
"""

from __future__ import annotations


class RiskEngineError(Exception):
    """Base class for all risk engine errors."""


class InvalidEventError(RiskEngineError):
    """A risk event cannot be scored (e.g. missing created_at)."""

    def __init__(self, message: str, file_path: str | None = None) -> None:
        super().__init__(message)
        self.file_path = file_path


class EnrichmentError(RiskEngineError):
    """External enrichment (embedding or vector search) failed."""


class EmbeddingError(EnrichmentError):
    """The query embedding could not be generated."""


class RetrievalError(EnrichmentError):
    """The vector search could not be executed."""


class SchemaError(RiskEngineError):
    """Structured LLM output failed schema validation."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class RateLimitError(RiskEngineError):
    """Upstream generation quota is exhausted."""
