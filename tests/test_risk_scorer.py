"""
Tests for Risk Scorer — verify the five components, tiers and signals.
"""

import math
from datetime import timedelta

import pytest

from app.core.errors import InvalidEventError
from app.core.risk_scorer import RiskScorer, score_file
from app.models.risk_models import ComponentWeights, RiskScoringConfig, RiskTier
from conftest import NOW, make_event


def test_empty_events_score_zero():
    result = score_file("src/a.ts", [], NOW)
    assert result.final_risk_score == 0
    assert result.tier == RiskTier.IGNORABLE
    assert result.components.recency_weighted_risk == 0
    assert result.signals.top_keywords == []
    assert result.signals.dominant_event_type is None


def test_missing_created_at_raises():
    events = [make_event(0.5), make_event(0.6, created_at=None)]
    with pytest.raises(InvalidEventError) as exc:
        score_file("src/a.ts", events, NOW)
    assert exc.value.file_path == "src/a.ts"


def test_single_event_score():
    result = score_file("src/a.ts", [make_event(0.8)], NOW)
    assert result.components.recency_weighted_risk == 0.8
    assert result.components.frequency_score == 0.05
    assert result.components.severity_entropy == 0
    assert result.components.correlation_score == 0
    assert result.components.instability_score == 0
    # 0.35 × 0.8 + 0.20 × 0.05
    assert result.final_risk_score == 0.29
    assert result.tier == RiskTier.NORMAL


def test_recency_half_life_halves_weight():
    fresh_high = [make_event(1.0, age_days=0), make_event(0.0, age_days=30)]
    old_high = [make_event(1.0, age_days=30), make_event(0.0, age_days=0)]
    assert score_file("f", fresh_high, NOW).components.recency_weighted_risk == 0.667
    assert score_file("f", old_high, NOW).components.recency_weighted_risk == 0.333


def test_older_event_contributes_less():
    scorer = RiskScorer()
    recent = scorer.recency_weighted_risk([make_event(1.0, age_days=1), make_event(0.0)], NOW)
    older = scorer.recency_weighted_risk([make_event(1.0, age_days=60), make_event(0.0)], NOW)
    assert older < recent


def test_event_type_weights_apply():
    events = [
        make_event(1.0, event_type="workflow_crash"),
        make_event(0.0, event_type="architecture"),
    ]
    # 1.0 × 1.0 / (1.0 + 0.2)
    assert score_file("f", events, NOW).components.recency_weighted_risk == 0.833


def test_frequency_saturates():
    ten = [make_event(0.5, age_days=i) for i in range(10)]
    many = [make_event(0.5, age_days=i) for i in range(25)]
    assert score_file("f", ten, NOW).components.frequency_score == 0.5
    assert score_file("f", many, NOW).components.frequency_score == 1.0


def test_severity_entropy_bands():
    all_bands = [make_event(s, age_days=i) for i, s in enumerate([0.1, 0.4, 0.7, 0.9])]
    two_bands = [make_event(0.1), make_event(0.9, age_days=1)]
    same_band = [make_event(0.85), make_event(0.95, age_days=1)]
    assert score_file("f", all_bands, NOW).components.severity_entropy == 1.0
    assert score_file("f", two_bands, NOW).components.severity_entropy == 0.5
    assert score_file("f", same_band, NOW).components.severity_entropy == 0


def test_band_edges_are_lower_inclusive():
    # 0.3 and 0.6 sit in different bands from 0.29 and 0.59
    events = [make_event(0.3), make_event(0.6, age_days=1)]
    assert score_file("f", events, NOW).components.severity_entropy == 0.5
    same = [make_event(0.3), make_event(0.59, age_days=1)]
    assert score_file("f", same, NOW).components.severity_entropy == 0


def test_correlation_counts_multi_file_incidents():
    events = [
        make_event(0.5, affected_files=["a", "b"]),
        make_event(0.5, age_days=1, affected_files=["a", "b", "c"]),
        make_event(0.5, age_days=2, affected_files=["a"]),
        make_event(0.5, age_days=3),
    ]
    assert score_file("f", events, NOW).components.correlation_score == 0.5


def test_instability_uses_chronological_order():
    # Given newest first; chronological severities are 0.2, 0.8, 0.2
    events = [
        make_event(0.2, age_days=1),
        make_event(0.8, age_days=2),
        make_event(0.2, age_days=3),
    ]
    assert score_file("f", events, NOW).components.instability_score == 0.6


def test_tier_boundaries():
    scorer = RiskScorer()
    assert scorer.map_tier(0.0) == RiskTier.IGNORABLE
    assert scorer.map_tier(0.149999) == RiskTier.IGNORABLE
    assert scorer.map_tier(0.15) == RiskTier.NORMAL
    assert scorer.map_tier(0.29999) == RiskTier.NORMAL
    assert scorer.map_tier(0.3) == RiskTier.NEED_CONTEXT
    assert scorer.map_tier(0.49999) == RiskTier.NEED_CONTEXT
    assert scorer.map_tier(0.5) == RiskTier.DEEP_CONTEXT
    assert scorer.map_tier(0.69999) == RiskTier.DEEP_CONTEXT
    assert scorer.map_tier(0.7) == RiskTier.ADVANCED_CONTEXT_RETRIEVAL
    assert scorer.map_tier(1.0) == RiskTier.ADVANCED_CONTEXT_RETRIEVAL


def test_scores_bounded(crash_history):
    extreme = [
        make_event(1.0 if i % 2 else 0.0, age_days=i, affected_files=["a", "b"])
        for i in range(100)
    ]
    for events in (crash_history, extreme):
        result = score_file("f", events, NOW)
        values = [result.final_risk_score, *result.components.model_dump().values()]
        for v in values:
            assert not math.isnan(v)
            assert 0.0 <= v <= 1.0


def test_future_events_stay_bounded():
    events = [make_event(0.9, age_days=-10), make_event(0.1, age_days=5)]
    result = score_file("f", events, NOW)
    assert 0.0 <= result.components.recency_weighted_risk <= 1.0


def test_score_is_idempotent(crash_history):
    assert score_file("f", crash_history, NOW) == score_file("f", crash_history, NOW)


def test_raising_severity_does_not_lower_score(crash_history):
    single_low = score_file("f", [make_event(0.3)], NOW)
    single_high = score_file("f", [make_event(0.9)], NOW)
    assert single_high.final_risk_score >= single_low.final_risk_score

    bumped = [e.model_copy() for e in crash_history]
    bumped[2] = bumped[2].model_copy(update={"severity_score": 0.75})
    assert (
        score_file("f", bumped, NOW).final_risk_score
        >= score_file("f", crash_history, NOW).final_risk_score
    )


def test_signals_strict_dominance(crash_history):
    signals = score_file("f", crash_history, NOW).signals
    assert signals.dominant_event_type == "workflow_crash"
    assert signals.dominant_risk_category == "logic"
    assert set(signals.top_keywords[:2]) == {"timeout", "db"}
    assert signals.top_keywords[2] == "style"


def test_top_keywords_capped_at_five():
    events = [
        make_event(0.5, age_days=i, keywords=[f"k{i}", "common"]) for i in range(8)
    ]
    keywords = score_file("f", events, NOW).signals.top_keywords
    assert len(keywords) == 5
    assert keywords[0] == "common"


def test_naive_timestamps_are_utc():
    aware = score_file("f", [make_event(0.6, age_days=3), make_event(0.2)], NOW)
    naive_events = [
        make_event(0.6, created_at=(NOW - timedelta(days=3)).replace(tzinfo=None)),
        make_event(0.2, created_at=NOW.replace(tzinfo=None)),
    ]
    assert score_file("f", naive_events, NOW) == aware


def test_custom_half_life():
    config = RiskScoringConfig(half_life_days=10)
    events = [make_event(1.0, age_days=10), make_event(0.0)]
    # weights 0.5 and 1.0
    assert score_file("f", events, NOW, config).components.recency_weighted_risk == 0.333


def test_weights_must_sum_to_one():
    with pytest.raises(ValueError):
        ComponentWeights(recency=0.5)
    ComponentWeights(recency=0.5, frequency=0.05)
