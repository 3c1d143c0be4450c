"""
Decision Log — JSON-lines trail of request-level risk decisions.

One line per DecisionEvent, plus the wall-clock time it was written.
Agent statistics are computed by scanning this file.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import deque
from collections.abc import Iterator
from pathlib import Path

from app.config import settings
from app.models.risk_models import DecisionEvent

logger = logging.getLogger("codrel.audit")


class DecisionLog:
    """Append-only decision file, safe for concurrent writers in one process."""

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = Path(log_path or settings.decision_log_path)
        self._lock = threading.Lock()

    def log(self, event: DecisionEvent) -> None:
        line = json.dumps(
            {
                "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                **event.model_dump(mode="json"),
            }
        )
        try:
            with self._lock, self.log_path.open("a") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error(f"Failed to write decision log {self.log_path}: {e}")

    def read_recent(self, count: int = 50) -> list[dict]:
        """Last `count` decisions, oldest first."""
        return list(deque(self._entries(), maxlen=count))

    def by_agent(self, agent: str, limit: int = 50) -> list[dict]:
        """Last `limit` decisions made for one agent, newest first."""
        recent = deque((e for e in self._entries() if e.get("agent") == agent), maxlen=limit)
        recent.reverse()
        return list(recent)

    def _entries(self) -> Iterator[dict]:
        # Corrupt lines are skipped
        try:
            with self.log_path.open() as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug(f"skipping corrupt decision line in {self.log_path}")
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error(f"Failed to read decision log {self.log_path}: {e}")
