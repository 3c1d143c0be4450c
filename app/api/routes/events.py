"""
Ingestion Routes — boundary where loose upstream payloads become strict models.

POST /events        store pre-classified RiskEvents (each validated individually)
PUT  /files/meta    upsert a file's historical counters
POST /incidents     classify raw incidents with the LLM, store resulting events
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from app.api.dependencies import get_event_store, get_incident_analyzer, get_meta_store
from app.ingest.incident_analyzer import IncidentAnalyzer
from app.models.api_models import EventIngestRequest, EventIngestResponse, RejectedEvent
from app.models.event_models import FileMeta, RiskEvent
from app.models.llm_models import IngestResult, RawIncident
from app.store.memory_store import EventStore, FileMetaStore

logger = logging.getLogger("codrel.api.events")

router = APIRouter()


class IncidentBatchRequest(BaseModel):
    repo: str = Field(..., min_length=1)
    incidents: list[RawIncident] = Field(default_factory=list)


@router.post("/events", response_model=EventIngestResponse)
async def ingest_events(
    request: EventIngestRequest,
    store: EventStore = Depends(get_event_store),
):
    accepted: list[RiskEvent] = []
    rejected: list[RejectedEvent] = []

    for index, raw in enumerate(request.events):
        try:
            accepted.append(RiskEvent.model_validate(raw))
        except ValidationError as e:
            rejected.append(
                RejectedEvent(
                    index=index,
                    errors=[
                        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                        for err in e.errors()
                    ],
                )
            )

    if accepted:
        store.add_events(accepted)
    if rejected:
        logger.warning(f"Rejected {len(rejected)}/{len(request.events)} events at boundary")

    return EventIngestResponse(accepted=len(accepted), rejected=rejected)


@router.put("/files/meta", response_model=FileMeta)
async def upsert_file_meta(
    meta: FileMeta,
    store: FileMetaStore = Depends(get_meta_store),
):
    store.put(meta)
    return meta


@router.post("/incidents", response_model=IngestResult)
async def ingest_incidents(
    request: IncidentBatchRequest,
    analyzer: IncidentAnalyzer | None = Depends(get_incident_analyzer),
):
    if analyzer is None:
        raise HTTPException(
            status_code=503, detail="Incident analysis disabled: GROQ_API_KEY not set"
        )
    return await analyzer.analyze_batch(request.repo, request.incidents)
