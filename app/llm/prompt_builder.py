"""
Prompt Builder — Builds the incident classification prompt.

The model receives the incident facts (error lines, touched files, patches)
and must answer with the IncidentAnalysis JSON schema only.
"""

from __future__ import annotations

from app.models.llm_models import RawIncident

MAX_PATCH_CHARS = 2000

INCIDENT_PROMPT = """\
You are a senior DevOps engineer classifying a repository incident.

Decide which file most likely caused it, how severe it is, and which keywords
describe it. Only name files from the FILES section.

Output STRICT JSON matching this schema:

{
  "main_cause_file": "exact path from FILES",
  "cause_files": ["exact paths from FILES"],
  "critical_score": number between 0 and 1,
  "critical_label": "low" | "medium" | "high" | "critical",
  "critical_reason": "...",
  "root_reason": "...",
  "risk_category": "logic | syntax | dependency | flaky_test | architecture | security | other",
  "short_explanation": "one sentence",
  "rag_summary": "search-friendly summary including error keywords and file names",
  "keywords": ["..."],
  "confidence": number between 0 and 1
}
"""

KIND_TITLES = {
    "workflow_crash": "Workflow crash",
    "reverted_pr": "Reverted pull request",
    "rejected_pr": "Rejected pull request",
    "architecture": "Architecture change",
}


def build_incident_prompt(repo: str, incident: RawIncident) -> str:
    """Build the classification prompt for one incident."""
    files = "\n\n".join(
        f">>> FILE: {f.filename}\n"
        f"{f.patch[:MAX_PATCH_CHARS] if f.patch else '(No patch content)'}"
        for f in incident.files
    ) or "(No files listed)"
    error_lines = "\n".join(incident.error_lines) or "(No log lines)"

    return (
        f"{INCIDENT_PROMPT}\n"
        f"INCIDENT: {KIND_TITLES.get(incident.kind.value, incident.kind.value)}\n"
        f"Repository: {repo}\n"
        f"Title: {incident.title or '(untitled)'}\n"
        f"Branch: {incident.branch or 'unknown'}\n\n"
        f"--- DESCRIPTION ---\n{incident.description or '(none)'}\n\n"
        f"--- RELEVANT LOG LINES ---\n{error_lines}\n\n"
        f"--- FILES ---\n{files}\n\n"
        "Respond with STRICT JSON only. No markdown, no text outside JSON."
    )
