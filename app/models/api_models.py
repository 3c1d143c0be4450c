"""
API Request/Response Models — Public contract of the HTTP endpoints.

Risk-analysis payloads use snake_case; the agent-facing /mcp endpoints keep
the camelCase keys their clients send.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.context_models import ContextRecord
from app.models.risk_models import Decision, FileRiskResult


class RiskAnalysisRequest(BaseModel):
    """Request body for /api/risk-analysis."""

    repo: str = Field(..., min_length=1, description="Repository, format owner/repo")
    files: list[str] = Field(..., min_length=1, description="Files that need historical context")
    change: str = Field(default="", description="Retrieval-friendly description of the change")


class FileError(BaseModel):
    file_path: str
    error: str


class RiskAnalysisResponse(BaseModel):
    """Score mode fills results; full mode adds contexts and the advisory."""

    repo: str
    mode: Literal["score", "full"] = "score"
    count: int = 0
    results: list[FileRiskResult] = Field(default_factory=list)
    errors: list[FileError] = Field(default_factory=list)
    contexts: list[ContextRecord] | None = None
    context: str | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssessFileRiskRequest(_CamelModel):
    repo_id: str
    agent: str
    changed_files: list[str]
    diff_summary: str | None = None


class AssessFileRiskResponse(_CamelModel):
    risk_score: float
    decision: Decision
    reasons: list[str]
    evidence_ids: list[str] | None = None
    event_id: str
    alerted: bool = False


class AnalyzeFileRequest(_CamelModel):
    repo_id: str
    file_path: str
    context: str | None = None


class AnalyzeFileResponse(_CamelModel):
    risk_score: float
    decision: Decision
    reasons: list[str]
    evidence_ids: list[str] | None = None
    rag_context: str | None = None


class ExplainDecisionRequest(_CamelModel):
    decision: Decision
    risk_score: float = Field(..., ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)
    repo_id: str
    agent: str | None = None


class ExplainDecisionResponse(_CamelModel):
    success: bool = True
    event_id: str
    explanation: str
    voice_triggered: bool


class EventIngestRequest(BaseModel):
    """Loose upstream records; each one is validated individually."""

    events: list[dict[str, Any]] = Field(default_factory=list)


class RejectedEvent(BaseModel):
    index: int
    errors: list[str]


class EventIngestResponse(BaseModel):
    accepted: int = 0
    rejected: list[RejectedEvent] = Field(default_factory=list)
