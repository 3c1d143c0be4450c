"""
LLM Data Models — Raw incidents in, strictly validated analyses out.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.event_models import EventType, RiskEvent, SeverityLabel


class IncidentFile(BaseModel):
    """One file touched by the change behind an incident."""

    filename: str
    patch: str | None = None


class RawIncident(BaseModel):
    """A workflow crash or PR outcome as delivered by ingestion."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    kind: EventType
    title: str = ""
    description: str = ""
    branch: str | None = None
    error_lines: list[str] = Field(default_factory=list)
    files: list[IncidentFile] = Field(default_factory=list)
    created_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)


class IncidentAnalysis(BaseModel):
    """Validated LLM classification of one incident — strict schema enforcement."""

    model_config = ConfigDict(extra="ignore")

    main_cause_file: str = Field(..., min_length=1)
    cause_files: list[str] = Field(default_factory=list)
    critical_score: float = Field(..., ge=0.0, le=1.0)
    critical_label: SeverityLabel
    critical_reason: str = ""
    root_reason: str = ""
    risk_category: str | None = None
    short_explanation: str = ""
    rag_summary: str = ""
    keywords: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class IngestResult(BaseModel):
    """Outcome of analysing a batch of incidents."""

    events: list[RiskEvent] = Field(default_factory=list)
    skipped: dict[str, str] = Field(
        default_factory=dict, description="incident id -> reason it was skipped"
    )
    indexed: int = Field(default=0, description="documents written to the vector index")
    tokens_used: int = 0
