"""
Context Data Models — Tier-driven context records and retrieval results.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.models.risk_models import RiskTier


class ContextSources(BaseModel):
    """Which historical sources contributed to a context block."""

    workflow: int | None = None
    prs: int | None = None
    issues: int | None = None
    files: int | None = None


class ContextRecord(BaseModel):
    file_path: str
    risk_score: float
    tier: RiskTier
    context: str
    sources: ContextSources | None = None


class RetrievalResult(BaseModel):
    """Documents returned by the vector search collaborator."""

    documents: list[str] = Field(default_factory=list)


class VectorDocument(BaseModel):
    """One incident summary to be indexed for later retrieval."""

    id: str
    text: str
    metadata: dict[str, str | int | float | bool] = Field(default_factory=dict)
