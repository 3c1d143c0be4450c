"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from app.audit.logger import DecisionLog
from app.config import settings
from app.context.router import ContextRouter
from app.core.risk_scorer import RiskScorer
from app.engine.decision_aggregator import DecisionAggregator
from app.ingest.incident_analyzer import IncidentAnalyzer
from app.llm.gateway import LLMGateway
from app.models.risk_models import RiskScoringConfig
from app.notify.publisher import HttpPublisher, LoggingPublisher, Publisher
from app.retrieval.vector_client import HttpRetriever
from app.store.memory_store import InMemoryEventStore, InMemoryFileMetaStore
from app.workers.risk_worker import RiskWorker


@lru_cache
def get_event_store() -> InMemoryEventStore:
    """Shared event store singleton."""
    return InMemoryEventStore()


@lru_cache
def get_meta_store() -> InMemoryFileMetaStore:
    """Shared file-meta store singleton."""
    return InMemoryFileMetaStore()


@lru_cache
def get_scorer() -> RiskScorer:
    return RiskScorer(RiskScoringConfig.from_settings(settings))


@lru_cache
def get_decision_log() -> DecisionLog:
    return DecisionLog()


@lru_cache
def get_publisher() -> Publisher:
    if settings.publish_url:
        return HttpPublisher(settings.publish_url)
    return LoggingPublisher()


@lru_cache
def get_retriever() -> HttpRetriever:
    """Vector service client, shared by context retrieval and incident indexing."""
    return HttpRetriever()


@lru_cache
def get_context_router() -> ContextRouter:
    return ContextRouter(retriever=get_retriever())


@lru_cache
def get_risk_worker() -> RiskWorker:
    """Shared risk worker singleton."""
    return RiskWorker(
        event_store=get_event_store(),
        scorer=get_scorer(),
        router=get_context_router(),
        request_timeout=settings.request_timeout_seconds,
    )


@lru_cache
def get_decision_aggregator() -> DecisionAggregator:
    return DecisionAggregator(
        meta_store=get_meta_store(),
        event_store=get_event_store(),
        scorer=get_scorer(),
        decision_log=get_decision_log(),
        publisher=get_publisher(),
    )


@lru_cache
def get_incident_analyzer() -> IncidentAnalyzer | None:
    """None when no Groq key is configured."""
    if not settings.groq_api_key:
        return None
    return IncidentAnalyzer(
        LLMGateway(),
        event_store=get_event_store(),
        indexer=get_retriever(),
    )


async def close_clients() -> None:
    """Close HTTP clients held by singletons that were actually created."""
    if get_retriever.cache_info().currsize:
        await get_retriever().aclose()
        get_retriever.cache_clear()
        get_context_router.cache_clear()
        get_risk_worker.cache_clear()
        get_incident_analyzer.cache_clear()

    if get_publisher.cache_info().currsize:
        publisher = get_publisher()
        if isinstance(publisher, HttpPublisher):
            await publisher.aclose()
        get_publisher.cache_clear()
        get_decision_aggregator.cache_clear()
