"""
Test fixtures shared across all risk engine tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.models.context_models import RetrievalResult
from app.models.event_models import RiskEvent

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_event(
    severity=0.5,
    age_days=0.0,
    event_type="workflow_crash",
    file_path="src/api/handler.ts",
    **overrides,
):
    data = {
        "repo": "acme/demo-app",
        "file_path": file_path,
        "event_type": event_type,
        "severity_score": severity,
        "created_at": NOW - timedelta(days=age_days),
    }
    data.update(overrides)
    return RiskEvent(**data)


class FakeRetriever:
    """Records queries; returns canned documents or raises."""

    def __init__(self, documents=None, error=None, delay=0.0):
        self.documents = documents if documents is not None else []
        self.error = error
        self.delay = delay
        self.calls = []

    async def query(self, repo, text, where, limit):
        self.calls.append({"repo": repo, "text": text, "where": where, "limit": limit})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return RetrievalResult(documents=list(self.documents))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def crash_history():
    """A file with a volatile crash/revert history spread over two months."""
    return [
        make_event(0.9, age_days=1, keywords=["timeout", "db"], risk_category="logic",
                   affected_files=["src/api/handler.ts", "src/db/pool.ts"],
                   summary="Handler timed out waiting on pool", event_source_id="c-1"),
        make_event(0.2, age_days=5, event_type="reverted_pr", keywords=["timeout"],
                   risk_category="logic", summary="Reverted retry change", event_source_id="pr-12"),
        make_event(0.7, age_days=20, keywords=["db"], risk_category="dependency",
                   summary="Driver upgrade broke pool", event_source_id="c-2"),
        make_event(0.4, age_days=45, event_type="rejected_pr", keywords=["style"],
                   summary="Rejected refactor"),
    ]


@pytest.fixture
def fake_retriever():
    return FakeRetriever(documents=["crash #1: pool exhausted", "revert #12: retry storm"])
