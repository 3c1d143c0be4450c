"""
Path / Historical Risk Classifier — allow/warn/block for a set of changed files.

Per file:
    path risk      = first critical-path hit (+0.4), otherwise first
                     sensitive-file hit (+0.5); one contribution per file
    historical     = ci_failures > 3 (+0.2), reverted_prs > 2 (+0.25),
                     change_frequency > 10 (+0.15), all cumulative
risk_score = Σ per-file risk / max(len(files), 1), capped at 1.0
"""

from __future__ import annotations

import logging
from typing import Callable

from app.models.event_models import FileMeta
from app.models.risk_models import Decision, RiskAssessment

logger = logging.getLogger("codrel.path_risk")

CRITICAL_PATHS = ["auth/", "security/", "payments/", "infra/", "secrets/"]
SENSITIVE_FILES = [".env", "config.prod", "credentials", "private"]

CRITICAL_PATH_SCORE = 0.4
SENSITIVE_FILE_SCORE = 0.5

BLOCK_THRESHOLD = 0.7
WARN_THRESHOLD = 0.3

NO_RISK_REASON = "No risk signals detected"

FileMetaLookup = Callable[[str, str], "FileMeta | None"]


def path_risk(file_path: str) -> tuple[float, list[str]]:
    """
    Static path check. The first critical-path hit wins; sensitive-file
    patterns are only consulted when no critical path matched.
    """
    normalized = file_path.lower()

    for critical in CRITICAL_PATHS:
        if critical in normalized:
            return CRITICAL_PATH_SCORE, [f"Critical path: {critical}"]

    for sensitive in SENSITIVE_FILES:
        if sensitive in normalized:
            return SENSITIVE_FILE_SCORE, [f"Sensitive file pattern: {sensitive}"]

    return 0.0, []


def historical_risk(meta: FileMeta) -> tuple[float, list[str]]:
    """Cumulative bonuses from the file's CI/PR/churn counters."""
    score = 0.0
    reasons: list[str] = []

    if meta.ci_failures > 3:
        score += 0.2
        reasons.append(f"High CI failure count: {meta.ci_failures}")

    if meta.reverted_prs > 2:
        score += 0.25
        reasons.append(f"Multiple reverted PRs: {meta.reverted_prs}")

    if meta.change_frequency > 10:
        score += 0.15
        reasons.append(f"High change frequency: {meta.change_frequency}/week")

    return score, reasons


def score_to_decision(score: float) -> Decision:
    """
    Thresholds apply to the unrounded score. The reported risk_score is
    rounded to 2 decimals afterwards, so e.g. 0.69997 reports 0.7 with warn.
    """
    if score >= BLOCK_THRESHOLD:
        return Decision.BLOCK
    if score >= WARN_THRESHOLD:
        return Decision.WARN
    return Decision.ALLOW


def assess(
    repo_id: str,
    changed_files: list[str],
    file_meta_lookup: FileMetaLookup | None = None,
) -> RiskAssessment:
    """
    Assess a proposed change from its file paths and file history.

    Args:
        repo_id: Repository the change targets
        changed_files: Paths touched by the change
        file_meta_lookup: (repo_id, file_path) -> FileMeta | None

    Returns:
        RiskAssessment with a never-empty reasons list.
    """
    reasons: list[str] = []
    total_score = 0.0

    for file_path in changed_files:
        score, path_reasons = path_risk(file_path)
        total_score += score
        reasons.extend(path_reasons)

        meta = file_meta_lookup(repo_id, file_path) if file_meta_lookup else None
        if meta is not None:
            score, history_reasons = historical_risk(meta)
            total_score += score
            reasons.extend(history_reasons)

    normalized = min(total_score / max(len(changed_files), 1), 1.0)
    decision = score_to_decision(normalized)

    if not reasons:
        reasons.append(NO_RISK_REASON)

    logger.info(
        f"Assessed {len(changed_files)} files in {repo_id}: "
        f"score={normalized:.2f} decision={decision.value}"
    )

    return RiskAssessment(
        risk_score=round(normalized, 2),
        decision=decision,
        reasons=reasons,
    )
