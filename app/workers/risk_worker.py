"""
Risk Worker — Async orchestrator for per-file risk analysis requests.

Pipeline:
1. Load each file's events from the event store
2. Score each file (pure, synchronous); invalid events fail only that file
3. Score mode stops here
4. Full mode: build tiered contexts concurrently (retrieval per file, isolated)
5. Compose the aggregate advisory
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Literal

from app.context.advisory import compose_advisory
from app.context.router import ContextRouter
from app.core.errors import InvalidEventError
from app.core.risk_scorer import RiskScorer
from app.models.api_models import FileError, RiskAnalysisResponse
from app.models.event_models import RiskEvent
from app.models.risk_models import FileRiskResult
from app.store.memory_store import EventStore

logger = logging.getLogger("codrel.worker")


class RiskWorker:
    """Runs score-only or full risk analyses over an injected event store."""

    def __init__(
        self,
        event_store: EventStore,
        scorer: RiskScorer | None = None,
        router: ContextRouter | None = None,
        request_timeout: float | None = None,
    ) -> None:
        self.event_store = event_store
        self.scorer = scorer or RiskScorer()
        self.router = router or ContextRouter()
        self.request_timeout = request_timeout

    def score_files(
        self,
        repo: str,
        files: Sequence[str],
        now: datetime | None = None,
    ) -> tuple[list[tuple[FileRiskResult, list[RiskEvent]]], list[FileError]]:
        """Score every file; files with invalid events are reported, not raised."""
        now = now or datetime.now(timezone.utc)
        scored: list[tuple[FileRiskResult, list[RiskEvent]]] = []
        errors: list[FileError] = []

        for file_path in files:
            events = self.event_store.list_events(repo, file_path)
            try:
                result = self.scorer.score(file_path, events, now)
            except InvalidEventError as e:
                logger.warning(f"rejecting {file_path}: {e}")
                errors.append(FileError(file_path=file_path, error=str(e)))
                continue
            scored.append((result, events))

        return scored, errors

    async def run_analysis(
        self,
        repo: str,
        files: Sequence[str],
        change: str = "",
        mode: Literal["score", "full"] = "score",
        now: datetime | None = None,
    ) -> RiskAnalysisResponse:
        """
        Execute a risk analysis.

        Args:
            repo: Repository, format owner/repo
            files: Files to analyze (duplicates are analyzed once)
            change: Description of the proposed change (full mode)
            mode: 'score' returns results only; 'full' adds contexts + advisory
            now: Evaluation instant, defaults to current UTC time

        Returns:
            RiskAnalysisResponse
        """
        run_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        unique_files = list(dict.fromkeys(files))
        logger.info(f"[{run_id}] {mode} analysis of {len(unique_files)} files in {repo}")

        scored, errors = self.score_files(repo, unique_files, now)
        response = RiskAnalysisResponse(
            repo=repo,
            mode=mode,
            count=len(scored),
            results=[result for result, _ in scored],
            errors=errors,
        )

        if mode == "full":
            contexts = await self.router.build_contexts(
                repo, scored, change, request_timeout=self.request_timeout
            )
            response.contexts = contexts
            response.context = compose_advisory(contexts, change)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.info(
            f"[{run_id}] Analysis complete in {elapsed_ms:.0f}ms — "
            f"{len(scored)} scored, {len(errors)} rejected"
        )
        return response
