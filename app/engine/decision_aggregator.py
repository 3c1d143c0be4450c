"""
Decision Aggregator — One decision per submitted change.

Pipeline:
1. Path/historical assessment across all changed files (score + decision)
2. Incident-history scoring per file, when an event store is configured
   (adds reasons and evidence ids, never changes the score)
3. Persist the DecisionEvent to the decision log
4. Publish it; alert when decision == block or (warn and score > threshold)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.audit.logger import DecisionLog
from app.config import settings
from app.core.errors import InvalidEventError
from app.core.path_risk import NO_RISK_REASON, assess
from app.core.risk_scorer import RiskScorer
from app.models.risk_models import Decision, DecisionEvent, RiskAssessment, RiskTier
from app.notify.publisher import (
    RISK_EVENTS_TOPIC,
    VOICE_ALERTS_TOPIC,
    LoggingPublisher,
    Publisher,
    alert_priority,
    explain_decision,
)
from app.store.memory_store import EventStore, FileMetaStore

logger = logging.getLogger("codrel.decision")

_HISTORY_TIERS = {
    RiskTier.NEED_CONTEXT,
    RiskTier.DEEP_CONTEXT,
    RiskTier.ADVANCED_CONTEXT_RETRIEVAL,
}


class DecisionOutcome(BaseModel):
    event_id: str
    assessment: RiskAssessment
    alerted: bool = False


class AgentStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    agent: str
    total_assessments: int = 0
    allowed: int = 0
    warned: int = 0
    blocked: int = 0
    risk_rate: float = 0.0
    risk_level: str = "normal"
    recent_activity: list[dict] = Field(default_factory=list)


def should_alert(decision: Decision, risk_score: float, threshold: float | None = None) -> bool:
    limit = settings.alert_risk_threshold if threshold is None else threshold
    return decision == Decision.BLOCK or (decision == Decision.WARN and risk_score > limit)


class DecisionAggregator:
    """Fan-out per file, fan-in into one RiskAssessment plus side effects."""

    def __init__(
        self,
        meta_store: FileMetaStore,
        event_store: EventStore | None = None,
        scorer: RiskScorer | None = None,
        decision_log: DecisionLog | None = None,
        publisher: Publisher | None = None,
    ) -> None:
        self.meta_store = meta_store
        self.event_store = event_store
        self.scorer = scorer or RiskScorer()
        self.decision_log = decision_log
        self.publisher = publisher or LoggingPublisher()

    def evaluate(
        self,
        repo_id: str,
        changed_files: list[str],
        now: datetime | None = None,
    ) -> RiskAssessment:
        """Pure part of the pipeline: no persistence, no publishing."""
        assessment = assess(repo_id, changed_files, self.meta_store.get)
        if self.event_store is None:
            return assessment

        history_reasons: list[str] = []
        evidence_ids: list[str] = []
        for file_path in changed_files:
            events = self.event_store.list_events(repo_id, file_path)
            try:
                result = self.scorer.score(file_path, events, now)
            except InvalidEventError as e:
                logger.warning(f"skipping incident history for {file_path}: {e}")
                continue
            if result.tier in _HISTORY_TIERS:
                history_reasons.append(
                    f"Incident history: {file_path} scored {result.final_risk_score:.2f} "
                    f"({result.tier.value})"
                )
                evidence_ids.extend(e.event_source_id for e in events if e.event_source_id)

        if not history_reasons:
            return assessment

        reasons = [r for r in assessment.reasons if r != NO_RISK_REASON]
        return assessment.model_copy(
            update={
                "reasons": reasons + history_reasons,
                "evidence_ids": list(dict.fromkeys(evidence_ids)) or None,
            }
        )

    async def decide(
        self,
        repo_id: str,
        agent: str,
        changed_files: list[str],
    ) -> DecisionOutcome:
        """Assess, persist and publish one change."""
        assessment = self.evaluate(repo_id, changed_files)
        event_id = str(uuid.uuid4())

        event = DecisionEvent(
            id=event_id,
            repo_id=repo_id,
            agent=agent,
            decision=assessment.decision,
            risk_score=assessment.risk_score,
            reasons=assessment.reasons,
            changed_files=changed_files,
            evidence_ids=assessment.evidence_ids,
            created_at=datetime.now(timezone.utc),
        )
        if self.decision_log is not None:
            self.decision_log.log(event)

        await self._publish(
            RISK_EVENTS_TOPIC,
            {"eventId": event_id, **event.model_dump(mode="json", by_alias=True)},
        )

        alerted = should_alert(assessment.decision, assessment.risk_score)
        if alerted:
            await self._publish(
                VOICE_ALERTS_TOPIC,
                {
                    "eventId": event_id,
                    "message": explain_decision(
                        assessment.decision, assessment.risk_score,
                        assessment.reasons, repo_id,
                    ),
                    "priority": alert_priority(assessment.decision),
                    "decision": assessment.decision.value,
                    "riskScore": assessment.risk_score,
                    "reasons": assessment.reasons,
                    "repoId": repo_id,
                },
            )

        logger.info(
            f"[{event_id[:8]}] {repo_id} agent={agent} decision={assessment.decision.value} "
            f"score={assessment.risk_score} alerted={alerted}"
        )
        return DecisionOutcome(event_id=event_id, assessment=assessment, alerted=alerted)

    def agent_stats(self, agent: str) -> AgentStats:
        entries = self.decision_log.by_agent(agent) if self.decision_log else []
        allowed = sum(1 for e in entries if e.get("decision") == Decision.ALLOW.value)
        warned = sum(1 for e in entries if e.get("decision") == Decision.WARN.value)
        blocked = sum(1 for e in entries if e.get("decision") == Decision.BLOCK.value)
        total = len(entries)

        if blocked > 5:
            level = "dangerous"
        elif warned > 10:
            level = "suspicious"
        else:
            level = "normal"

        return AgentStats(
            agent=agent,
            total_assessments=total,
            allowed=allowed,
            warned=warned,
            blocked=blocked,
            risk_rate=(warned + blocked) / total if total else 0.0,
            risk_level=level,
            recent_activity=entries[:5],
        )

    async def _publish(self, topic: str, payload: dict) -> None:
        try:
            await self.publisher.publish(topic, payload)
        except Exception:
            logger.warning(f"publish to {topic} failed", exc_info=True)
