"""
Event & File-Meta Stores — Storage interfaces injected into the risk engine.

The in-memory backends are keyed by (repo, file_path) and are the default
for a single process. Upgradeable to Postgres/Redis by implementing the
same protocols.
"""

from __future__ import annotations

import threading
from typing import Any, Protocol

from app.core.risk_scorer import as_utc
from app.models.event_models import FileMeta, RiskEvent


class EventStore(Protocol):
    def list_events(self, repo: str, file_path: str) -> list[RiskEvent]: ...

    def add_events(self, events: list[RiskEvent]) -> int: ...


class FileMetaStore(Protocol):
    def get(self, repo_id: str, file_path: str) -> FileMeta | None: ...

    def put(self, meta: FileMeta) -> None: ...


def _key(repo: str, file_path: str) -> str:
    return f"{repo}:{file_path}"


def _event_time(event: RiskEvent) -> float:
    # Untimed events sort first; the scorer rejects them anyway
    if event.created_at is None:
        return float("-inf")
    return as_utc(event.created_at).timestamp()


class InMemoryEventStore:
    """Risk events per (repo, file), returned oldest first."""

    def __init__(self) -> None:
        self._store: dict[str, list[RiskEvent]] = {}
        self._lock = threading.Lock()

    def list_events(self, repo: str, file_path: str) -> list[RiskEvent]:
        with self._lock:
            events = list(self._store.get(_key(repo, file_path), []))
        return sorted(events, key=_event_time)

    def add_events(self, events: list[RiskEvent]) -> int:
        """Store events. Returns count stored."""
        with self._lock:
            for event in events:
                self._store.setdefault(_key(event.repo, event.file_path), []).append(event)
        return len(events)

    @property
    def size(self) -> int:
        """Number of stored events."""
        return sum(len(v) for v in self._store.values())

    def stats(self) -> dict[str, Any]:
        return {
            "files": len(self._store),
            "events": self.size,
        }


class InMemoryFileMetaStore:
    """Historical counters per (repo, file)."""

    def __init__(self, entries: list[FileMeta] | None = None) -> None:
        self._store: dict[str, FileMeta] = {}
        for meta in entries or []:
            self.put(meta)

    def get(self, repo_id: str, file_path: str) -> FileMeta | None:
        return self._store.get(_key(repo_id, file_path))

    def put(self, meta: FileMeta) -> None:
        self._store[_key(meta.repo_id, meta.file_path)] = meta
