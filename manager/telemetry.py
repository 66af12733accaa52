from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class FeedbackEvent:
    stage: str
    success: bool
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)


class FeedbackMonitor:
    """Capture success/failure metadata per pipeline stage."""

    def __init__(self) -> None:
        self._events: List[FeedbackEvent] = []

    def log_event(self, stage: str, success: bool, metadata: Optional[Dict[str, Any]] = None) -> None:
        event = FeedbackEvent(stage=stage, success=success, metadata=metadata or {})
        self._events.append(event)
        if not success:
            logger.warning("Stage failure @%s -> %s", stage, event.metadata)

    def failures(self, stage: str | None = None) -> List[FeedbackEvent]:
        return [e for e in self._events if not e.success and (stage is None or e.stage == stage)]

    def summary(self) -> Dict[str, Any]:
        stage_totals: Dict[str, Dict[str, int]] = {}
        for event in self._events:
            stage_stats = stage_totals.setdefault(event.stage, {"succeeded": 0, "failed": 0})
            if event.success:
                stage_stats["succeeded"] += 1
            else:
                stage_stats["failed"] += 1

        return {
            "total_events": len(self._events),
            "stages": stage_totals,
            "recent_failures": [
                {"stage": event.stage, "metadata": event.metadata, "ts": event.timestamp}
                for event in self.failures()
            ][:5],
        }


class PerformanceMonitor:
    """Record execution durations via context manager usage."""

    class _StageTimer:
        def __init__(self, monitor: PerformanceMonitor, stage: str) -> None:
            self._monitor = monitor
            self._stage = stage
            self._start: float | None = None

        def __enter__(self) -> PerformanceMonitor._StageTimer:
            self._start = time.perf_counter()
            return self

        def __exit__(self, exc_type, exc, exc_tb) -> None:
            end = time.perf_counter()
            duration = end - (self._start or end)
            self._monitor._record(self._stage, duration)
            if exc:
                logger.error("Stage %s failed after %.2fs: %s", self._stage, duration, exc)

    def __init__(self) -> None:
        self._durations: Dict[str, List[float]] = {}

    def track(self, stage: str) -> PerformanceMonitor._StageTimer:
        return PerformanceMonitor._StageTimer(self, stage)

    def _record(self, stage: str, duration: float) -> None:
        self._durations.setdefault(stage, []).append(duration)
        logger.debug("Stage %s duration %.2fs", stage, duration)

    def summary(self) -> Dict[str, Dict[str, float]]:
        snapshot: Dict[str, Dict[str, float]] = {}
        for stage, durations in self._durations.items():
            if not durations:
                continue
            snapshot[stage] = {
                "count": len(durations),
                "avg_seconds": sum(durations) / len(durations),
                "max_seconds": max(durations),
            }
        return snapshot


class WorkloadManager:
    """Run independent blocking calls (chapter generation) with bounded concurrency.

    Futures are handed back in submission order; callers that consume them in
    that order see results in submission order no matter which call finishes first.
    """

    def __init__(self, max_workers: int = 2) -> None:
        self.max_workers = max(1, max_workers)
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="chapter")
        self._task_log: List[Dict[str, Any]] = []

    def submit_task(self, task_name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        def _runner() -> Any:
            start = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration = time.perf_counter() - start
                self._task_log.append({"task_name": task_name, "duration": duration})

        return self._executor.submit(_runner)

    def summary(self) -> Dict[str, Any]:
        durations = [task["duration"] for task in self._task_log] or [0.0]
        return {
            "max_workers": self.max_workers,
            "tasks_recorded": len(self._task_log),
            "max_task_seconds": max(durations),
        }

    def shutdown(self, wait: bool = True) -> None:
        # Queued calls are dropped; calls already running finish on their own.
        self._executor.shutdown(wait=wait, cancel_futures=True)
