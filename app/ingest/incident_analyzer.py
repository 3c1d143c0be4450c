"""
Incident Analyzer — Turns raw incidents into RiskEvents via the LLM gateway.

Partial-failure semantics: an incident whose analysis fails validation
(SchemaError) or hits the provider quota (RateLimitError) is skipped and
logged; the rest of the batch is still processed.

Each analysed incident's rag_summary is indexed once per batch into the
repo's vector collection, tagged with its event type so the retrieval tiers
can filter on it. Indexing failures are logged and never fail the batch.
"""

from __future__ import annotations

import logging

from app.core.errors import EnrichmentError, RateLimitError, SchemaError
from app.llm.gateway import LLMGateway
from app.llm.prompt_builder import build_incident_prompt
from app.llm.response_validator import validate_incident_analysis
from app.models.context_models import VectorDocument
from app.models.event_models import RiskEvent
from app.models.llm_models import IncidentAnalysis, IngestResult, RawIncident
from app.retrieval.vector_client import Indexer
from app.store.memory_store import EventStore

logger = logging.getLogger("codrel.ingest")


def to_risk_event(repo: str, incident: RawIncident, analysis: IncidentAnalysis) -> RiskEvent:
    affected = list(dict.fromkeys([analysis.main_cause_file, *analysis.cause_files]))
    return RiskEvent(
        repo=repo,
        file_path=analysis.main_cause_file,
        affected_files=affected,
        event_type=incident.kind,
        event_source_id=incident.id,
        severity_score=analysis.critical_score,
        severity_label=analysis.critical_label,
        risk_category=analysis.risk_category,
        keywords=analysis.keywords,
        summary=analysis.short_explanation or analysis.root_reason or None,
        created_at=incident.created_at,
        raw_payload=analysis.model_dump(),
    )


def to_vector_document(
    repo: str, incident: RawIncident, analysis: IncidentAnalysis
) -> VectorDocument:
    """Search text for one incident; the id is stable so re-analysis overwrites."""
    summary = analysis.rag_summary or analysis.short_explanation or incident.title
    text = (
        f"{summary}\n\n"
        f"File: {analysis.main_cause_file}\n"
        f"Root cause: {analysis.root_reason or 'unknown'}\n"
        f"Keywords: {', '.join(analysis.keywords)}"
    )
    return VectorDocument(
        id=f"{incident.kind.value}-{incident.id}",
        text=text,
        metadata={
            "repo": repo,
            "type": incident.kind.value,
            "file": analysis.main_cause_file,
            "source_id": incident.id,
            "severity": analysis.critical_label.value,
            "severity_score": analysis.critical_score,
            "keywords": ",".join(analysis.keywords),
            "created_at": incident.created_at.isoformat(),
        },
    )


class IncidentAnalyzer:
    """Classifies incidents one at a time, then stores and indexes the batch."""

    def __init__(
        self,
        llm_gateway: LLMGateway,
        event_store: EventStore | None = None,
        indexer: Indexer | None = None,
    ) -> None:
        self.llm_gateway = llm_gateway
        self.event_store = event_store
        self.indexer = indexer

    async def analyze(self, repo: str, incident: RawIncident) -> RiskEvent:
        """
        Analyze one incident.

        Raises:
            SchemaError: the LLM output was unusable.
            RateLimitError: the provider quota is exhausted.
        """
        analysis = await self._classify(repo, incident)
        return to_risk_event(repo, incident, analysis)

    async def analyze_batch(
        self, repo: str, incidents: list[RawIncident]
    ) -> IngestResult:
        """Analyze incidents sequentially; store and index whatever succeeded."""
        result = IngestResult()
        documents: list[VectorDocument] = []
        logger.info(f"processing incidents | repo={repo} count={len(incidents)}")

        for incident in incidents:
            try:
                analysis = await self._classify(repo, incident)
            except SchemaError as e:
                logger.warning(f"skipping incident {incident.id}: {e}")
                result.skipped[incident.id] = f"schema: {e}"
                continue
            except RateLimitError as e:
                logger.warning(f"rate limited, skipping incident {incident.id}: {e}")
                result.skipped[incident.id] = f"rate_limit: {e}"
                continue
            result.events.append(to_risk_event(repo, incident, analysis))
            documents.append(to_vector_document(repo, incident, analysis))

        if self.event_store is not None and result.events:
            self.event_store.add_events(result.events)

        if self.indexer is not None and documents:
            try:
                result.indexed = await self.indexer.upsert(repo, documents)
            except EnrichmentError as e:
                logger.warning(f"indexing failed | repo={repo} count={len(documents)} | {e}")

        get_tokens = getattr(self.llm_gateway, "get_tokens_used", None)
        result.tokens_used = get_tokens() if callable(get_tokens) else 0

        logger.info(
            f"completed | repo={repo} events={len(result.events)} "
            f"indexed={result.indexed} skipped={len(result.skipped)}"
        )
        return result

    async def _classify(self, repo: str, incident: RawIncident) -> IncidentAnalysis:
        prompt = build_incident_prompt(repo, incident)
        response = await self.llm_gateway.complete(prompt)
        if not response.get("success"):
            raise SchemaError(
                f"LLM returned no usable JSON: {response.get('error', 'unparseable output')}"
            )

        return validate_incident_analysis(
            response.get("parsed"),
            valid_file_paths={f.filename for f in incident.files},
        )
