"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_event_store
from app.config import settings
from app.store.memory_store import InMemoryEventStore

router = APIRouter()


@router.get("/health")
async def health(store: InMemoryEventStore = Depends(get_event_store)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "engine": "file-risk-tiering",
        "incident_analysis": bool(settings.groq_api_key),
        "store": store.stats(),
    }
