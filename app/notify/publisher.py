"""
Decision Publisher — Fire-and-forget notifications for risk decisions.

Topics:
    risk-events   every request-level decision
    voice-alerts  spoken alerts for block / high-score warn decisions

Publish failures are logged and never propagate to the request.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from app.models.risk_models import Decision

logger = logging.getLogger("codrel.notify")

RISK_EVENTS_TOPIC = "risk-events"
VOICE_ALERTS_TOPIC = "voice-alerts"


class Publisher(Protocol):
    async def publish(self, topic: str, payload: dict[str, Any]) -> None: ...


class LoggingPublisher:
    """Default publisher: logs each message and keeps it for inspection."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, dict[str, Any]]] = []

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        self.messages.append((topic, payload))
        logger.info(f"[{topic}] {payload.get('eventId', '')} {payload.get('decision', '')}")


class HttpPublisher:
    """POSTs {"topic": ..., "payload": ...} to a webhook/bridge endpoint."""

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        try:
            response = await self._client.post(self.url, json={"topic": topic, "payload": payload})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"publish failed | topic={topic} | {e}")

    async def aclose(self) -> None:
        await self._client.aclose()


def alert_priority(decision: Decision) -> str:
    return "high" if decision == Decision.BLOCK else "medium"


def explain_decision(
    decision: Decision, risk_score: float, reasons: list[str], repo_id: str
) -> str:
    """Short spoken explanation of a decision."""
    percent = round(risk_score * 100)

    if decision == Decision.BLOCK:
        return (
            f"Attention: A code change has been blocked in repository {repo_id}. "
            f"Risk score: {percent} percent. "
            f"Reasons: {'. '.join(reasons[:2])}. "
            "Please review before proceeding."
        )

    if decision == Decision.WARN:
        first = reasons[0] if reasons else "Elevated risk"
        return (
            f"Warning: High risk change detected in {repo_id}. "
            f"Risk score: {percent} percent. "
            f"{first}. Consider additional review."
        )

    return f"Change approved for {repo_id}. Risk level: low."
