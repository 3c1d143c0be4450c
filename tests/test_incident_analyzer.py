"""
Tests for Incident Analyzer and LLM Gateway — incidents in, risk events out.
"""

import asyncio
from types import SimpleNamespace

import groq
import httpx
import pytest

from app.core.errors import RateLimitError, RetrievalError, SchemaError
from app.ingest.incident_analyzer import IncidentAnalyzer
from app.llm.gateway import LLMGateway
from app.llm.prompt_builder import build_incident_prompt
from app.models.event_models import EventType
from app.models.llm_models import RawIncident
from app.store.memory_store import InMemoryEventStore
from conftest import NOW

REPO = "acme/demo-app"


def _incident(incident_id="run-1", kind="workflow_crash", **overrides):
    data = {
        "id": incident_id,
        "kind": kind,
        "title": "CI failed on main",
        "errorLines": ["Error: pool exhausted"],
        "files": [
            {"filename": "src/db/pool.ts", "patch": "-max: 20\n+max: 2"},
            {"filename": "src/api/handler.ts"},
        ],
        "createdAt": NOW.isoformat(),
    }
    data.update(overrides)
    return RawIncident.model_validate(data)


def _parsed(**overrides):
    data = {
        "main_cause_file": "src/db/pool.ts",
        "cause_files": ["src/api/handler.ts"],
        "critical_score": 0.85,
        "critical_label": "critical",
        "risk_category": "dependency",
        "short_explanation": "Pool shrunk to 2 connections.",
        "keywords": ["pool"],
    }
    data.update(overrides)
    return data


class FakeGateway:
    """Returns queued responses; an Exception entry is raised instead."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.prompts = []

    async def complete(self, prompt):
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get_tokens_used(self):
        return 42


def _ok(parsed):
    return {"content": "", "parsed": parsed, "tokens_used": 10, "success": True}


def test_analyze_maps_incident_to_event():
    gateway = FakeGateway([_ok(_parsed())])
    event = asyncio.run(IncidentAnalyzer(gateway).analyze(REPO, _incident()))

    assert event.repo == REPO
    assert event.file_path == "src/db/pool.ts"
    assert event.affected_files == ["src/db/pool.ts", "src/api/handler.ts"]
    assert event.event_type == EventType.WORKFLOW_CRASH
    assert event.event_source_id == "run-1"
    assert event.severity_score == 0.85
    assert event.summary == "Pool shrunk to 2 connections."
    assert event.created_at == NOW
    assert "src/db/pool.ts" in gateway.prompts[0]


def test_analyze_rejects_failed_completion():
    gateway = FakeGateway([{"content": "", "parsed": None, "success": False, "error": "boom"}])
    with pytest.raises(SchemaError):
        asyncio.run(IncidentAnalyzer(gateway).analyze(REPO, _incident()))


def test_batch_skips_bad_incidents_and_stores_the_rest():
    store = InMemoryEventStore()
    gateway = FakeGateway([
        _ok(_parsed()),
        _ok(_parsed(main_cause_file="src/invented.ts")),
        RateLimitError("LLM quota exhausted"),
        _ok(_parsed(critical_score=0.3, critical_label="low")),
    ])
    incidents = [
        _incident("run-1"),
        _incident("run-2"),
        _incident("pr-7", kind="reverted_pr"),
        _incident("pr-8", kind="rejected_pr"),
    ]
    result = asyncio.run(IncidentAnalyzer(gateway, event_store=store).analyze_batch(REPO, incidents))

    assert [e.event_source_id for e in result.events] == ["run-1", "pr-8"]
    assert result.skipped["run-2"].startswith("schema:")
    assert result.skipped["pr-7"].startswith("rate_limit:")
    assert result.tokens_used == 42
    assert len(store.list_events(REPO, "src/db/pool.ts")) == 2


class FakeIndexer:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    async def upsert(self, repo, documents):
        self.calls.append((repo, documents))
        if self.error:
            raise self.error
        return len(documents)


def test_batch_indexes_summaries_once():
    indexer = FakeIndexer()
    gateway = FakeGateway([
        _ok(_parsed(rag_summary="Pool shrunk to 2 connections and requests queued.")),
        _ok(_parsed(main_cause_file="src/invented.ts")),
        _ok(_parsed(main_cause_file="src/api/handler.ts", keywords=["timeout", "retry"])),
    ])
    incidents = [_incident("run-1"), _incident("run-2"), _incident("pr-9", kind="reverted_pr")]

    result = asyncio.run(
        IncidentAnalyzer(gateway, indexer=indexer).analyze_batch(REPO, incidents)
    )

    assert result.indexed == 2
    assert len(indexer.calls) == 1
    repo, documents = indexer.calls[0]
    assert repo == REPO
    assert [d.id for d in documents] == ["workflow_crash-run-1", "reverted_pr-pr-9"]
    assert documents[0].text.startswith("Pool shrunk to 2 connections and requests queued.")
    assert documents[0].metadata["type"] == "workflow_crash"
    assert documents[0].metadata["file"] == "src/db/pool.ts"
    assert documents[0].metadata["severity"] == "critical"
    assert documents[1].metadata["type"] == "reverted_pr"
    assert documents[1].metadata["file"] == "src/api/handler.ts"
    assert documents[1].metadata["keywords"] == "timeout,retry"


def test_index_failure_keeps_batch():
    store = InMemoryEventStore()
    indexer = FakeIndexer(error=RetrievalError("vector upsert unavailable"))
    gateway = FakeGateway([_ok(_parsed())])

    result = asyncio.run(
        IncidentAnalyzer(gateway, event_store=store, indexer=indexer)
        .analyze_batch(REPO, [_incident()])
    )

    assert [e.event_source_id for e in result.events] == ["run-1"]
    assert result.indexed == 0
    assert len(store.list_events(REPO, "src/db/pool.ts")) == 1


def test_nothing_to_index_skips_indexer():
    indexer = FakeIndexer()
    gateway = FakeGateway([_ok(_parsed(main_cause_file="src/invented.ts"))])
    result = asyncio.run(
        IncidentAnalyzer(gateway, indexer=indexer).analyze_batch(REPO, [_incident()])
    )
    assert result.events == []
    assert indexer.calls == []


def test_prompt_includes_incident_facts():
    prompt = build_incident_prompt(REPO, _incident())
    assert "Error: pool exhausted" in prompt
    assert "+max: 2" in prompt
    assert REPO in prompt


class _Completions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def create(self, **kwargs):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(outcomes):
    completions = _Completions(outcomes)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _completion(content, tokens=30):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def test_gateway_parses_and_counts_tokens():
    client, _ = _client([_completion('{"main_cause_file": "a.ts"}')])
    gateway = LLMGateway(client=client)
    response = asyncio.run(gateway.complete("prompt"))

    assert response["success"]
    assert response["parsed"] == {"main_cause_file": "a.ts"}
    assert gateway.get_tokens_used() == 30


def test_gateway_rate_limit_is_not_retried():
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    error = groq.RateLimitError(
        "quota", response=httpx.Response(429, request=request), body=None
    )
    client, completions = _client([error, _completion("{}")])

    with pytest.raises(RateLimitError):
        asyncio.run(LLMGateway(client=client).complete("prompt"))
    assert completions.calls == 1
