"""
Response Validator — Strict schema validation for incident analyses.

Rejects responses that:
- Fail JSON parsing
- Fail the IncidentAnalysis schema (missing fields, scores outside [0, 1])
- Blame a file that is not part of the incident, when the incident lists files
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from app.core.errors import SchemaError
from app.models.llm_models import IncidentAnalysis

logger = logging.getLogger("codrel.llm.validator")


def validate_incident_analysis(
    parsed: dict[str, Any] | None,
    valid_file_paths: set[str] | None = None,
) -> IncidentAnalysis:
    """
    Validate an LLM incident analysis.

    Args:
        parsed: Parsed JSON dict from the LLM
        valid_file_paths: Files listed on the incident; empty/None disables the check

    Returns:
        The validated IncidentAnalysis. Cause files outside the whitelist are dropped.

    Raises:
        SchemaError: if the response is unusable.
    """
    if parsed is None:
        raise SchemaError("LLM returned non-JSON or empty response")

    try:
        analysis = IncidentAnalysis.model_validate(parsed)
    except ValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise SchemaError(f"Schema validation failed: {errors}", errors=errors) from e

    if valid_file_paths:
        if analysis.main_cause_file not in valid_file_paths:
            raise SchemaError(
                f"Hallucinated file: '{analysis.main_cause_file}' not in incident files",
                errors=[f"main_cause_file={analysis.main_cause_file}"],
            )
        dropped = [f for f in analysis.cause_files if f not in valid_file_paths]
        if dropped:
            logger.warning(f"Dropping cause files not in incident: {dropped}")
            analysis.cause_files = [
                f for f in analysis.cause_files if f in valid_file_paths
            ]

    return analysis
