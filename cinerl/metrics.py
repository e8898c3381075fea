"""
Runtime metrics for the recommendation engine.

Tracks:
- Latency per engine operation (learn, recommend, stats)
- Learning health per event kind (mean reward, mean absolute TD error)
- Recommendation source mix (rl / hybrid / explore)
- Counters and store errors keyed by subsystem
"""
from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, Optional

logger = logging.getLogger(__name__)

SOURCE_PREFIX = "recommend.source."


@dataclass
class LatencyStats:
    """Latency samples for one operation; percentiles use the most recent window."""
    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    window: Deque[float] = field(default_factory=lambda: deque(maxlen=1000))

    def record(self, ms: float) -> None:
        self.count += 1
        self.total_ms += ms
        self.max_ms = max(self.max_ms, ms)
        self.window.append(ms)

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0

    def percentile(self, p: float) -> float:
        if not self.window:
            return 0.0
        ordered = sorted(self.window)
        return ordered[min(int(len(ordered) * p / 100), len(ordered) - 1)]

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 2),
            "max_ms": round(self.max_ms, 2),
            "p50_ms": round(self.percentile(50), 2),
            "p95_ms": round(self.percentile(95), 2),
        }


@dataclass
class LearningHealth:
    """Running means of the TD updates applied for one event kind."""
    updates: int = 0
    reward_sum: float = 0.0
    abs_td_error_sum: float = 0.0

    def record(self, reward: float, td_error: float) -> None:
        self.updates += 1
        self.reward_sum += reward
        self.abs_td_error_sum += abs(td_error)

    def to_dict(self) -> Dict[str, float]:
        n = max(1, self.updates)
        return {
            "updates": self.updates,
            "avg_reward": round(self.reward_sum / n, 4),
            "avg_abs_td_error": round(self.abs_td_error_sum / n, 4),
        }


class MetricsCollector:
    """
    Thread-safe metrics shared by one or more engines.

    Example:
        >>> metrics = MetricsCollector()
        >>> metrics.record_learn("click", reward=1.0, td_error=1.0)
        >>> metrics.record_recommendation({"hybrid": 7, "explore": 1})
        >>> metrics.source_mix()["explore"]
        0.125
    """

    _instance: Optional["MetricsCollector"] = None

    @classmethod
    def get_instance(cls) -> "MetricsCollector":
        """Get process-wide instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self):
        self._lock = threading.Lock()
        self._started = datetime.now()
        self._latencies: Dict[str, LatencyStats] = defaultdict(LatencyStats)
        self._learning: Dict[str, LearningHealth] = defaultdict(LearningHealth)
        self._counters: Dict[str, int] = defaultdict(int)
        self._errors: Dict[str, int] = defaultdict(int)

    # Latency

    def time_operation(self, operation: str) -> "LatencyContext":
        return LatencyContext(self, operation)

    def record_latency(self, operation: str, ms: float) -> None:
        with self._lock:
            self._latencies[operation].record(ms)

    def get_latency_stats(self, operation: str) -> LatencyStats:
        with self._lock:
            return self._latencies[operation]

    # Counters and errors

    def increment(self, counter: str, n: int = 1, subsystem: Optional[str] = None) -> int:
        key = f"{subsystem}.{counter}" if subsystem else counter
        with self._lock:
            self._counters[key] += n
            return self._counters[key]

    def get_counter(self, counter: str) -> int:
        with self._lock:
            return self._counters.get(counter, 0)

    def record_error(self, subsystem: str, error_type: str = "unknown") -> None:
        key = f"{subsystem}.{error_type}"
        with self._lock:
            self._errors[key] += 1
        logger.debug(f"error recorded: {key}")

    def get_error_count(self, key: str) -> int:
        with self._lock:
            return self._errors.get(key, 0)

    # Learning and recommendation

    def record_learn(self, kind: str, reward: float, td_error: float) -> None:
        """Count one applied TD update under ``learn.updates`` and its event kind."""
        with self._lock:
            self._counters["learn.updates"] += 1
            self._learning[kind].record(reward, td_error)

    def learning_health(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {kind: h.to_dict() for kind, h in sorted(self._learning.items())}

    def record_recommendation(self, sources: Dict[str, int]) -> None:
        """Count one served list and how many of its results came from each source."""
        with self._lock:
            self._counters["recommend.requests"] += 1
            for source, n in sources.items():
                self._counters[f"{SOURCE_PREFIX}{source}"] += n

    def source_mix(self) -> Dict[str, float]:
        """Share of all served results per source."""
        with self._lock:
            counts = {
                key[len(SOURCE_PREFIX):]: n
                for key, n in self._counters.items()
                if key.startswith(SOURCE_PREFIX)
            }
        total = sum(counts.values())
        if not total:
            return {}
        return {source: round(n / total, 4) for source, n in sorted(counts.items())}

    def summary(self) -> Dict:
        uptime = (datetime.now() - self._started).total_seconds()
        with self._lock:
            data = {
                "uptime_seconds": round(uptime, 1),
                "latencies": {op: s.to_dict() for op, s in self._latencies.items()},
                "counters": dict(self._counters),
                "errors": dict(self._errors),
            }
        data["learning"] = self.learning_health()
        data["source_mix"] = self.source_mix()
        return data


class LatencyContext:
    """Times a block and records it on exit; ``elapsed_ms`` stays readable afterwards."""

    def __init__(self, collector: MetricsCollector, operation: str):
        self.collector = collector
        self.operation = operation
        self.elapsed_ms: float = 0.0
        self._start = 0.0

    def __enter__(self) -> "LatencyContext":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        self.collector.record_latency(self.operation, self.elapsed_ms)


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.get_instance()
