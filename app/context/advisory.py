"""
Advisory Builder — Combines per-file contexts into one document for the agent.

The agent never receives raw events. It receives:
- The proposed change description
- The list of critical files (risk score above CRITICAL_SCORE)
- One block per file: tier, score, tier-specific context
- Fixed reviewer instructions
"""

from __future__ import annotations

from collections.abc import Sequence

from app.models.context_models import ContextRecord

CRITICAL_SCORE = 0.6

REVIEWER_INSTRUCTIONS = """\
You are reviewing a proposed code change against the historical risk of the files it touches.

Instructions:
- Correlate the proposed change with the failure history shown for each file.
- If the change is trivial (formatting, comments, renames), downplay historical risk.
- If the touched code paths match past crashes, reverts or rejections, warn explicitly
  and name the matching incident.
- Prefer the evidence above over assumptions; do not invent incidents that are not listed.
"""


def critical_files(records: Sequence[ContextRecord]) -> list[str]:
    return [r.file_path for r in records if r.risk_score > CRITICAL_SCORE]


def format_file_block(record: ContextRecord) -> str:
    return (
        f"### {record.file_path}\n"
        f"Tier: {record.tier.value}\n"
        f"Risk score: {record.risk_score:.3f}\n\n"
        f"{record.context}"
    )


def compose_advisory(records: Sequence[ContextRecord], change: str) -> str:
    """
    Build the aggregate advisory for a proposed change.

    Pure string formatting; no retrieval, no scoring.

    Args:
        records: Per-file ContextRecords, in the order files were requested
        change: Free-text description of the proposed change

    Returns:
        Complete advisory document.
    """
    critical = critical_files(records)
    critical_section = (
        "\n".join(f"- {path}" for path in critical) if critical else "- none"
    )
    file_blocks = "\n\n".join(format_file_block(r) for r in records) or "No files analyzed."

    return (
        "## Proposed change\n"
        f"{change.strip() or 'No description provided.'}\n\n"
        "## Critical files\n"
        f"{critical_section}\n\n"
        "## File risk context\n"
        f"{file_blocks}\n\n"
        "## Reviewer instructions\n"
        f"{REVIEWER_INSTRUCTIONS}"
    )
