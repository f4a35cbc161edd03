"""
Lightweight in-memory telemetry collectors for the FastAPI layer.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, TypedDict


@dataclass
class TelemetryEvent:
    repo: str
    ok: bool
    cache_hit: bool
    duration_ms: float
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@dataclass
class LookupStats:
    count: int = 0
    failures: int = 0
    cache_hits: int = 0
    total_duration_ms: float = 0.0
    last_timestamp: Optional[float] = None

    def average_duration_ms(self) -> float:
        return self.total_duration_ms / self.count if self.count else 0.0


class RecentEvent(TypedDict):
    repo: str
    ok: bool
    cache_hit: bool
    duration_ms: float
    metadata: Dict[str, Any]
    timestamp: float


class LookupSnapshot(TypedDict):
    count: int
    failures: int
    cache_hits: int
    total_duration_ms: float
    last_timestamp: Optional[float]
    average_duration_ms: float


class TelemetrySnapshot(TypedDict):
    lookup: LookupSnapshot
    recent_events: List[RecentEvent]


class Telemetry:
    """In-memory stats tracker exposed via the `/telemetry` endpoint."""

    def __init__(self, history_size: int = 50) -> None:
        self._lock = threading.Lock()
        self._history: Deque[TelemetryEvent] = deque(maxlen=history_size)
        self._lookup = LookupStats()

    def record_lookup(
        self,
        repo: str,
        duration_ms: float,
        ok: bool,
        cache_hit: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        event = TelemetryEvent(
            repo=repo,
            ok=ok,
            cache_hit=cache_hit,
            duration_ms=duration_ms,
            metadata=dict(metadata or {}),
        )
        with self._lock:
            self._history.appendleft(event)
            self._lookup.count += 1
            self._lookup.total_duration_ms += duration_ms
            self._lookup.last_timestamp = event.timestamp
            if not ok:
                self._lookup.failures += 1
            if cache_hit:
                self._lookup.cache_hits += 1

    def snapshot(self) -> TelemetrySnapshot:
        with self._lock:
            history: List[RecentEvent] = [
                {
                    "repo": event.repo,
                    "ok": event.ok,
                    "cache_hit": event.cache_hit,
                    "duration_ms": event.duration_ms,
                    "metadata": dict(event.metadata),
                    "timestamp": event.timestamp,
                }
                for event in list(self._history)
            ]
            return {
                "lookup": {
                    "count": self._lookup.count,
                    "failures": self._lookup.failures,
                    "cache_hits": self._lookup.cache_hits,
                    "total_duration_ms": self._lookup.total_duration_ms,
                    "last_timestamp": self._lookup.last_timestamp,
                    "average_duration_ms": self._lookup.average_duration_ms(),
                },
                "recent_events": history,
            }
