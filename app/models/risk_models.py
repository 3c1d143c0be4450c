"""
Risk Scoring Data Models — Per-file scores, tiers and request-level decisions.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class RiskTier(str, Enum):
    IGNORABLE = "ignorable"
    NORMAL = "normal"
    NEED_CONTEXT = "need_context"
    DEEP_CONTEXT = "deep_context"
    ADVANCED_CONTEXT_RETRIEVAL = "advanced_context_retrieval"


class Decision(str, Enum):
    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"


DEFAULT_EVENT_TYPE_WEIGHTS: dict[str, float] = {
    "workflow_crash": 1.0,
    "reverted_pr": 0.75,
    "rejected_pr": 0.4,
    "architecture": 0.2,
}


class ComponentWeights(BaseModel):
    """Weights of the five components in the final score. Must sum to 1."""

    model_config = ConfigDict(frozen=True)

    recency: float = Field(default=0.35, ge=0.0, le=1.0)
    frequency: float = Field(default=0.20, ge=0.0, le=1.0)
    entropy: float = Field(default=0.15, ge=0.0, le=1.0)
    correlation: float = Field(default=0.15, ge=0.0, le=1.0)
    instability: float = Field(default=0.15, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_sum(self) -> "ComponentWeights":
        total = (
            self.recency + self.frequency + self.entropy
            + self.correlation + self.instability
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"component weights must sum to 1.0, got {total:.4f}")
        return self


class RiskScoringConfig(BaseModel):
    """Tunable constants of the file risk model."""

    model_config = ConfigDict(frozen=True)

    weights: ComponentWeights = Field(default_factory=ComponentWeights)
    event_type_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_EVENT_TYPE_WEIGHTS)
    )
    half_life_days: float = Field(default=30.0, gt=0)
    frequency_saturation: int = Field(default=20, gt=0)
    # Upper edges of the lower severity bands: <0.3, [0.3,0.6), [0.6,0.8), >=0.8
    severity_band_edges: tuple[float, ...] = (0.3, 0.6, 0.8)
    # Lower bounds of normal, need_context, deep_context, advanced_context_retrieval
    tier_thresholds: tuple[float, float, float, float] = (0.15, 0.30, 0.50, 0.70)

    @classmethod
    def from_settings(cls, settings) -> "RiskScoringConfig":
        return cls(
            half_life_days=settings.risk_half_life_days,
            frequency_saturation=settings.risk_frequency_saturation,
        )


class RiskComponents(BaseModel):
    """The five independent sub-scores, each in [0, 1]."""

    recency_weighted_risk: float = Field(default=0.0, ge=0.0, le=1.0)
    frequency_score: float = Field(default=0.0, ge=0.0, le=1.0)
    severity_entropy: float = Field(default=0.0, ge=0.0, le=1.0)
    correlation_score: float = Field(default=0.0, ge=0.0, le=1.0)
    instability_score: float = Field(default=0.0, ge=0.0, le=1.0)


class RiskSignals(BaseModel):
    dominant_event_type: str | None = None
    dominant_risk_category: str | None = None
    top_keywords: list[str] = Field(default_factory=list)


class FileRiskResult(BaseModel):
    """Scorer output for one file at one evaluation instant."""

    file_path: str
    final_risk_score: float = Field(..., ge=0.0, le=1.0)
    tier: RiskTier
    components: RiskComponents = Field(default_factory=RiskComponents)
    signals: RiskSignals = Field(default_factory=RiskSignals)


class RiskAssessment(BaseModel):
    """Path/historical decision for a set of changed files."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    risk_score: float = Field(..., ge=0.0, le=1.0)
    decision: Decision
    reasons: list[str] = Field(default_factory=list)
    evidence_ids: list[str] | None = None


class DecisionEvent(BaseModel):
    """Persisted/published record of one request-level decision."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    repo_id: str
    agent: str
    decision: Decision
    risk_score: float
    reasons: list[str] = Field(default_factory=list)
    changed_files: list[str] = Field(default_factory=list)
    evidence_ids: list[str] | None = None
    created_at: datetime
