"""
Context Router — Maps a file's risk tier to a context-building strategy.

    ignorable                  → fixed "no risk" line, no external calls
    normal                     → dominant signal + recent summaries, no external calls
    need_context               → scoped retrieval (crashes, reverts), small limit
    deep_context               → scoped retrieval incl. rejected PRs and issues
    advanced_context_retrieval → unscoped retrieval, largest limit

Retrieval failures never propagate: the file degrades to FALLBACK_CONTEXT
while keeping its score and tier. Files are built concurrently and in
isolation from each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from app.config import settings
from app.context.templates import (
    FALLBACK_CONTEXT,
    TIER_POLICIES,
    TierPolicy,
    ignorable_text,
    normal_text,
    retrieval_text,
)
from app.models.context_models import ContextRecord
from app.models.event_models import RiskEvent
from app.models.risk_models import FileRiskResult, RiskTier
from app.retrieval.vector_client import Retriever, type_filter

logger = logging.getLogger("codrel.context")


def degraded_record(file_path: str, result: FileRiskResult) -> ContextRecord:
    """Valid record carrying the fallback text; score and tier are preserved."""
    return ContextRecord(
        file_path=file_path,
        risk_score=result.final_risk_score,
        tier=result.tier,
        context=FALLBACK_CONTEXT,
    )


class ContextRouter:
    """Tier state machine over a pluggable retriever."""

    def __init__(
        self,
        retriever: Retriever | None = None,
        retrieval_timeout: float | None = None,
        limits: dict[RiskTier, int] | None = None,
    ) -> None:
        self.retriever = retriever
        self.retrieval_timeout = retrieval_timeout or settings.retrieval_timeout_seconds
        self.limits = limits or {
            tier: getattr(settings, policy.limit_setting)
            for tier, policy in TIER_POLICIES.items()
        }

    async def build_context(
        self,
        repo: str,
        file_path: str,
        result: FileRiskResult,
        events: Sequence[RiskEvent],
        change: str,
    ) -> ContextRecord:
        """Build the context block for one scored file. Never raises on retrieval."""
        if result.tier == RiskTier.IGNORABLE:
            return ContextRecord(
                file_path=file_path,
                risk_score=result.final_risk_score,
                tier=result.tier,
                context=ignorable_text(file_path),
            )

        if result.tier == RiskTier.NORMAL:
            return ContextRecord(
                file_path=file_path,
                risk_score=result.final_risk_score,
                tier=result.tier,
                context=normal_text(result, list(events)),
            )

        policy = TIER_POLICIES[result.tier]
        try:
            documents = await self._retrieve(repo, file_path, policy, result.tier, change)
        except Exception as e:
            logger.warning(
                f"context fallback | file={file_path} | tier={result.tier.value} "
                f"| reason={type(e).__name__}: {e}"
            )
            return degraded_record(file_path, result)

        return ContextRecord(
            file_path=file_path,
            risk_score=result.final_risk_score,
            tier=result.tier,
            context=retrieval_text(policy, documents),
            sources=policy.sources,
        )

    async def build_contexts(
        self,
        repo: str,
        scored: Sequence[tuple[FileRiskResult, Sequence[RiskEvent]]],
        change: str,
        request_timeout: float | None = None,
    ) -> list[ContextRecord]:
        """
        Build contexts for many files concurrently.

        Each file runs as its own task; when request_timeout expires, files
        still in flight are cancelled and degrade to the fallback text.
        Output order matches input order.
        """
        if not scored:
            return []

        tasks = [
            asyncio.create_task(
                self.build_context(repo, result.file_path, result, events, change)
            )
            for result, events in scored
        ]
        _, pending = await asyncio.wait(tasks, timeout=request_timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(
                f"request timeout | repo={repo} | {len(pending)}/{len(tasks)} files degraded"
            )

        records: list[ContextRecord] = []
        for task, (result, _) in zip(tasks, scored):
            if task in pending or task.cancelled():
                records.append(degraded_record(result.file_path, result))
            elif task.exception() is not None:
                logger.error(
                    f"context build failed | file={result.file_path} | {task.exception()}"
                )
                records.append(degraded_record(result.file_path, result))
            else:
                records.append(task.result())
        return records

    async def _retrieve(
        self,
        repo: str,
        file_path: str,
        policy: TierPolicy,
        tier: RiskTier,
        change: str,
    ) -> list[str]:
        if self.retriever is None:
            raise RuntimeError("no retriever configured")

        query = policy.query.format(file=file_path, change=change or "unspecified")
        where = type_filter(list(policy.event_types) if policy.event_types else None)
        limit = self.limits.get(tier, policy.max_snippets)

        result = await asyncio.wait_for(
            self.retriever.query(repo, query, where, limit),
            timeout=self.retrieval_timeout,
        )
        logger.debug(
            f"retrieved {len(result.documents)} docs | file={file_path} | tier={tier.value}"
        )
        return result.documents
