"""
Risk Scoring Engine — Aggregates time-stamped incidents into one file risk score.

final = 0.35 × recency_weighted_risk
      + 0.20 × frequency_score
      + 0.15 × severity_entropy
      + 0.15 × correlation_score
      + 0.15 × instability_score

Each component lies in [0, 1] and is reported individually for explainability.
The weights and thresholds come from RiskScoringConfig.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone

from app.core.errors import InvalidEventError
from app.models.event_models import RiskEvent
from app.models.risk_models import (
    FileRiskResult,
    RiskComponents,
    RiskScoringConfig,
    RiskSignals,
    RiskTier,
)

logger = logging.getLogger("codrel.scorer")

SECONDS_PER_DAY = 86_400
TOP_KEYWORDS = 5

_TIER_ORDER = (
    RiskTier.NORMAL,
    RiskTier.NEED_CONTEXT,
    RiskTier.DEEP_CONTEXT,
    RiskTier.ADVANCED_CONTEXT_RETRIEVAL,
)


class RiskScorer:
    """Pure, stateless file risk scorer. Safe to share across requests."""

    def __init__(self, config: RiskScoringConfig | None = None) -> None:
        self.config = config or RiskScoringConfig()

    def score(
        self,
        file_path: str,
        events: Sequence[RiskEvent],
        now: datetime | None = None,
    ) -> FileRiskResult:
        """
        Score one file from its incident history.

        Args:
            file_path: File being scored
            events: All incidents recorded for the file, in any order
            now: Evaluation instant (defaults to current UTC time)

        Returns:
            FileRiskResult with rounded components, tier and signals.

        Raises:
            InvalidEventError: if any event lacks created_at.
        """
        if not events:
            return FileRiskResult(
                file_path=file_path,
                final_risk_score=0.0,
                tier=RiskTier.IGNORABLE,
            )

        for event in events:
            if event.created_at is None:
                raise InvalidEventError(
                    f"RiskEvent for {file_path} missing created_at "
                    f"(source={event.event_source_id or 'unknown'})",
                    file_path=file_path,
                )

        now = as_utc(now or datetime.now(timezone.utc))
        cfg = self.config
        w = cfg.weights

        recency = self.recency_weighted_risk(events, now)
        frequency = _clamp(len(events) / cfg.frequency_saturation)
        entropy = self.severity_entropy(events)
        correlation = correlation_score(events)
        instability = instability_score(events)

        final = (
            w.recency * recency
            + w.frequency * frequency
            + w.entropy * entropy
            + w.correlation * correlation
            + w.instability * instability
        )
        final = _clamp(final)

        result = FileRiskResult(
            file_path=file_path,
            final_risk_score=round(final, 3),
            tier=self.map_tier(final),
            components=RiskComponents(
                recency_weighted_risk=round(recency, 3),
                frequency_score=round(frequency, 3),
                severity_entropy=round(entropy, 3),
                correlation_score=round(correlation, 3),
                instability_score=round(instability, 3),
            ),
            signals=extract_signals(events),
        )
        logger.debug(
            f"Scored {file_path}: {result.final_risk_score} ({result.tier.value}) "
            f"from {len(events)} events"
        )
        return result

    def recency_weighted_risk(
        self, events: Sequence[RiskEvent], now: datetime
    ) -> float:
        """Severity averaged with exponential-decay × event-type weights."""
        half_life = self.config.half_life_days
        type_weights = self.config.event_type_weights

        weighted_sum = 0.0
        norm = 0.0
        for e in events:
            age_days = (now - as_utc(e.created_at)).total_seconds() / SECONDS_PER_DAY
            decay = math.exp(-math.log(2) * age_days / half_life)
            weight = decay * type_weights.get(e.event_type.value, 0.0)
            weighted_sum += e.severity_score * weight
            norm += weight

        if norm == 0:
            return 0.0
        return _clamp(weighted_sum / norm)

    def severity_entropy(self, events: Sequence[RiskEvent]) -> float:
        """Base-2 Shannon entropy of severity band occupancy, normalised."""
        edges = self.config.severity_band_edges
        buckets = Counter(_severity_band(e.severity_score, edges) for e in events)
        total = len(events)

        entropy = 0.0
        for count in buckets.values():
            p = count / total
            entropy -= p * math.log2(p)

        max_entropy = math.log2(len(edges) + 1)
        return _clamp(entropy / max_entropy) if max_entropy > 0 else 0.0

    def map_tier(self, score: float) -> RiskTier:
        """Map a score to a tier; each threshold is an inclusive lower bound."""
        tier = RiskTier.IGNORABLE
        for threshold, candidate in zip(self.config.tier_thresholds, _TIER_ORDER):
            if score >= threshold:
                tier = candidate
        return tier


def correlation_score(events: Sequence[RiskEvent]) -> float:
    """Fraction of incidents whose effect spans more than one file."""
    if not events:
        return 0.0
    correlated = sum(1 for e in events if len(e.affected_files) > 1)
    return _clamp(correlated / len(events))


def instability_score(events: Sequence[RiskEvent]) -> float:
    """Mean absolute change between consecutive severities, oldest first."""
    ordered = sorted(events, key=lambda e: as_utc(e.created_at))
    delta_sum = sum(
        abs(ordered[i].severity_score - ordered[i - 1].severity_score)
        for i in range(1, len(ordered))
    )
    return _clamp(delta_sum / max(1, len(ordered) - 1))


def extract_signals(events: Sequence[RiskEvent]) -> RiskSignals:
    """
    Dominant event type/category and top keywords.

    Ties for the dominant key resolve to the key that was seen first;
    callers must not rely on which of several tied keys is returned.
    """
    type_count: Counter[str] = Counter()
    category_count: Counter[str] = Counter()
    keyword_count: Counter[str] = Counter()

    for e in events:
        type_count[e.event_type.value] += 1
        if e.risk_category:
            category_count[e.risk_category] += 1
        keyword_count.update(e.keywords)

    return RiskSignals(
        dominant_event_type=_max_key(type_count),
        dominant_risk_category=_max_key(category_count),
        top_keywords=[k for k, _ in keyword_count.most_common(TOP_KEYWORDS)],
    )


def score_file(
    file_path: str,
    events: Sequence[RiskEvent],
    now: datetime | None = None,
    config: RiskScoringConfig | None = None,
) -> FileRiskResult:
    """Convenience wrapper around RiskScorer(config).score(...)."""
    return RiskScorer(config).score(file_path, events, now)


def _severity_band(score: float, edges: Sequence[float]) -> int:
    for i, edge in enumerate(edges):
        if score < edge:
            return i
    return len(edges)


def _max_key(counts: Counter[str]) -> str | None:
    if not counts:
        return None
    return max(counts, key=counts.__getitem__)


def as_utc(ts: datetime) -> datetime:
    # Naive timestamps are UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))
