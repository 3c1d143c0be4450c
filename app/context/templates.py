"""
Context Templates — Per-tier text blocks handed to the coding agent.

Template-based: the low tiers never touch retrieval, the retrieval tiers wrap
whatever snippets the vector search returned.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.core.risk_scorer import as_utc
from app.models.context_models import ContextSources
from app.models.event_models import RiskEvent
from app.models.risk_models import FileRiskResult, RiskTier

FALLBACK_CONTEXT = "Risk detected, but historical context is unavailable."
NO_CONTEXT_FOUND = "No context found."
RECENT_EVENT_COUNT = 2


@dataclass(frozen=True)
class TierPolicy:
    """Retrieval strategy for one tier at or above need_context."""

    query: str
    event_types: tuple[str, ...] | None
    limit_setting: str
    max_snippets: int
    header: str
    evidence_title: str
    sources: ContextSources


TIER_POLICIES: dict[RiskTier, TierPolicy] = {
    RiskTier.NEED_CONTEXT: TierPolicy(
        query="Recent issues related to {file}. Change: {change}",
        event_types=("workflow_crash", "reverted_pr"),
        limit_setting="need_context_limit",
        max_snippets=6,
        header="Risk detected due to instability.",
        evidence_title="Relevant history:",
        sources=ContextSources(workflow=1, prs=1),
    ),
    RiskTier.DEEP_CONTEXT: TierPolicy(
        query="Historical risk patterns for {file}. Change: {change}",
        event_types=("workflow_crash", "reverted_pr", "rejected_pr", "issue"),
        limit_setting="deep_context_limit",
        max_snippets=8,
        header="Persistent instability detected.",
        evidence_title="Signals:",
        sources=ContextSources(workflow=1, prs=1, issues=1),
    ),
    RiskTier.ADVANCED_CONTEXT_RETRIEVAL: TierPolicy(
        query="Deep historical analysis for {file}. Change: {change}",
        event_types=None,
        limit_setting="advanced_context_limit",
        max_snippets=10,
        header=(
            "High confidence risk.\n\n"
            "This file has long-term instability correlated with failures."
        ),
        evidence_title="Comprehensive evidence:",
        sources=ContextSources(workflow=1, prs=1, issues=1, files=1),
    ),
}


def ignorable_text(file_path: str) -> str:
    return f"No significant risk signals detected for {file_path}."


def normal_text(result: FileRiskResult, events: list[RiskEvent]) -> str:
    """Dominant signal plus the summaries of the most recent incidents."""
    timed = [e for e in events if e.created_at is not None]
    recent = sorted(timed, key=lambda e: as_utc(e.created_at))[-RECENT_EVENT_COUNT:]
    lines = [f"- {e.summary or 'no summary'}" for e in recent] or ["- none recorded"]

    return (
        "Minor risk signals detected.\n\n"
        "Dominant signal:\n"
        f"- {result.signals.dominant_event_type or 'none'}\n\n"
        "Recent events:\n" + "\n".join(lines)
    )


def retrieval_text(policy: TierPolicy, documents: list[str]) -> str:
    snippets = documents[: policy.max_snippets]
    body = "\n\n".join(snippets) if snippets else NO_CONTEXT_FOUND
    return f"{policy.header}\n\n{policy.evidence_title}\n{body}"
