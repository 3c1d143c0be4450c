"""
Agent Routes — /mcp endpoints called by coding agents before they edit files.

POST /mcp/assessFileRisk    allow/warn/block for a set of changed files
POST /mcp/analyzeFile       single-file assessment plus historical context
POST /mcp/explainDecision   spoken explanation, alert when warranted
GET  /mcp/agentStats/{id}   decision history for one agent
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends

from app.api.dependencies import (
    get_decision_aggregator,
    get_publisher,
    get_risk_worker,
)
from app.engine.decision_aggregator import AgentStats, DecisionAggregator, should_alert
from app.models.api_models import (
    AnalyzeFileRequest,
    AnalyzeFileResponse,
    AssessFileRiskRequest,
    AssessFileRiskResponse,
    ExplainDecisionRequest,
    ExplainDecisionResponse,
)
from app.notify.publisher import (
    VOICE_ALERTS_TOPIC,
    Publisher,
    alert_priority,
    explain_decision,
)
from app.workers.risk_worker import RiskWorker

logger = logging.getLogger("codrel.api.mcp")

router = APIRouter(prefix="/mcp")

RAG_CONTEXT_THRESHOLD = 0.5


@router.post("/assessFileRisk", response_model=AssessFileRiskResponse)
async def assess_file_risk(
    request: AssessFileRiskRequest,
    aggregator: DecisionAggregator = Depends(get_decision_aggregator),
):
    outcome = await aggregator.decide(
        repo_id=request.repo_id,
        agent=request.agent,
        changed_files=request.changed_files,
    )
    a = outcome.assessment
    return AssessFileRiskResponse(
        risk_score=a.risk_score,
        decision=a.decision,
        reasons=a.reasons,
        evidence_ids=a.evidence_ids,
        event_id=outcome.event_id,
        alerted=outcome.alerted,
    )


@router.post("/analyzeFile", response_model=AnalyzeFileResponse)
async def analyze_file(
    request: AnalyzeFileRequest,
    aggregator: DecisionAggregator = Depends(get_decision_aggregator),
    worker: RiskWorker = Depends(get_risk_worker),
):
    """Assessment only; historical context is attached above the RAG threshold."""
    assessment = aggregator.evaluate(request.repo_id, [request.file_path])
    response = AnalyzeFileResponse(
        risk_score=assessment.risk_score,
        decision=assessment.decision,
        reasons=assessment.reasons,
        evidence_ids=assessment.evidence_ids,
    )

    if assessment.risk_score > RAG_CONTEXT_THRESHOLD:
        analysis = await worker.run_analysis(
            repo=request.repo_id,
            files=[request.file_path],
            change=request.context or "",
            mode="full",
        )
        if analysis.contexts:
            response.rag_context = analysis.contexts[0].context

    return response


@router.post("/explainDecision", response_model=ExplainDecisionResponse)
async def explain(
    request: ExplainDecisionRequest,
    publisher: Publisher = Depends(get_publisher),
):
    explanation = explain_decision(
        request.decision, request.risk_score, request.reasons, request.repo_id
    )
    event_id = str(uuid.uuid4())
    triggered = should_alert(request.decision, request.risk_score)

    if triggered:
        try:
            await publisher.publish(
                VOICE_ALERTS_TOPIC,
                {
                    "eventId": event_id,
                    "message": explanation,
                    "priority": alert_priority(request.decision),
                    "decision": request.decision.value,
                    "riskScore": request.risk_score,
                    "repoId": request.repo_id,
                },
            )
        except Exception:
            logger.warning("voice alert publish failed", exc_info=True)

    return ExplainDecisionResponse(
        event_id=event_id,
        explanation=explanation,
        voice_triggered=triggered,
    )


@router.get("/agentStats/{agent}", response_model=AgentStats)
async def agent_stats(
    agent: str,
    aggregator: DecisionAggregator = Depends(get_decision_aggregator),
):
    return aggregator.agent_stats(agent)
