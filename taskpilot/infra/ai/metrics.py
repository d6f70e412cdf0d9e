"""
AI call metrics: Prometheus instruments and a non-blocking queued sink.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from taskpilot.application.ports import CallOutcome, MetricsSinkPort
from taskpilot.infra.config.logging_config import get_logger

# Metrics definitions
AI_CALLS_TOTAL = Counter(
    "taskpilot_ai_calls_total", "AI provider calls", ["kind", "status"]
)
AI_CALL_DURATION_SECONDS = Histogram(
    "taskpilot_ai_call_duration_seconds", "AI provider call duration seconds", ["kind"]
)
AI_METRICS_DROPPED = Counter(
    "taskpilot_ai_metrics_dropped_total", "Call outcomes dropped on a full queue"
)
AI_FALLBACKS_TOTAL = Counter(
    "taskpilot_ai_fallbacks_total",
    "Feature results served by a rule-based fallback",
    ["kind", "reason"],
)


metrics_router = APIRouter()


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusRecorder:
    """Writes call outcomes into the Prometheus instruments."""

    def observe(self, outcome: CallOutcome) -> None:
        status = "success" if outcome.success else (outcome.error_code or "error")
        AI_CALLS_TOTAL.labels(kind=outcome.kind, status=status).inc()
        AI_CALL_DURATION_SECONDS.labels(kind=outcome.kind).observe(
            max(0.0, outcome.duration_ms / 1000.0)
        )

    def observe_fallback(self, kind: str, reason: str) -> None:
        AI_FALLBACKS_TOTAL.labels(kind=kind, reason=reason).inc()


class QueuedMetricsSink(MetricsSinkPort):
    """Fire-and-forget sink in front of a recorder.

    ``record`` only enqueues; a background task forwards outcomes to the
    recorder. When the queue is full the outcome is dropped and counted.
    """

    def __init__(self, recorder: PrometheusRecorder, maxsize: int = 1000):
        self.recorder = recorder
        self._queue: "asyncio.Queue[CallOutcome]" = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None
        self.dropped = 0
        self._log = get_logger("ai.metrics")

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def record(self, outcome: CallOutcome) -> None:
        try:
            self._queue.put_nowait(outcome)
        except asyncio.QueueFull:
            self.dropped += 1
            AI_METRICS_DROPPED.inc()

    def record_fallback(self, kind: str, reason: str) -> None:
        self.recorder.observe_fallback(kind, reason)

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="ai-metrics-sink")

    async def stop(self) -> None:
        """Flush what is queued, then stop the worker."""
        self.flush()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

    def flush(self) -> int:
        """Forward every queued outcome synchronously; returns the count."""
        forwarded = 0
        while True:
            try:
                outcome = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return forwarded
            self._forward(outcome)
            self._queue.task_done()
            forwarded += 1

    async def _run(self) -> None:
        while True:
            outcome = await self._queue.get()
            try:
                self._forward(outcome)
            finally:
                self._queue.task_done()

    def _forward(self, outcome: CallOutcome) -> None:
        try:
            self.recorder.observe(outcome)
        except Exception as exc:
            # a broken recorder must not take the worker down
            self._log.error("ai.metrics.record_failed", kind=outcome.kind, error=str(exc))
