"""
Event Data Models — Canonical per-file risk events and file history counters.

Upstream payloads arrive with camelCase keys (filePath, severityScore,
createdAt); both camelCase and snake_case are accepted at the boundary.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    WORKFLOW_CRASH = "workflow_crash"
    REVERTED_PR = "reverted_pr"
    REJECTED_PR = "rejected_pr"
    ARCHITECTURE = "architecture"


class SeverityLabel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskEvent(BaseModel):
    """One observed incident tied to a file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    repo: str = Field(..., description="Repository identifier, e.g. 'owner/repo'")
    file_path: str = Field(..., description="Primary file implicated")
    affected_files: list[str] = Field(
        default_factory=list, description="Other files touched by the same incident"
    )
    event_type: EventType
    event_source_id: str | None = Field(
        default=None, description="External correlation id (PR number, crash id)"
    )
    severity_score: float = Field(..., ge=0.0, le=1.0)
    severity_label: SeverityLabel | None = None
    risk_category: str | None = None
    keywords: list[str] = Field(default_factory=list)
    summary: str | None = None
    # Optional here so the scorer, not the parser, rejects untimed events
    created_at: datetime | None = None
    raw_payload: Any = Field(default=None, exclude=True)


class FileMeta(BaseModel):
    """Historical counters for one (repo, file). Owned by ingestion."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    repo_id: str
    file_path: str
    ci_failures: int = Field(default=0, ge=0)
    reverted_prs: int = Field(default=0, ge=0)
    change_frequency: int = Field(default=0, ge=0, description="Changes per week")
    last_modified: datetime | None = None
