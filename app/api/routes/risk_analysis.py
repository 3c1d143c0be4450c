"""
Risk Analysis Route — POST /api/risk-analysis?mode=score|full

score → per-file FileRiskResult only (no retrieval, cheap polling)
full  → results + tiered per-file contexts + aggregate advisory
"""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_risk_worker
from app.models.api_models import RiskAnalysisRequest, RiskAnalysisResponse
from app.workers.risk_worker import RiskWorker

logger = logging.getLogger("codrel.api.risk_analysis")

router = APIRouter()


@router.post("/api/risk-analysis", response_model=RiskAnalysisResponse)
async def risk_analysis(
    request: RiskAnalysisRequest,
    mode: Literal["score", "full"] = Query(default="score"),
    worker: RiskWorker = Depends(get_risk_worker),
):
    """Score the requested files and, in full mode, build their context."""
    files = [f.strip() for f in request.files if f.strip()]
    if not files:
        raise HTTPException(status_code=400, detail="No valid files provided")
    return await worker.run_analysis(
        repo=request.repo,
        files=files,
        change=request.change,
        mode=mode,
    )
