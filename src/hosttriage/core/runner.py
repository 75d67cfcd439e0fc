"""Collector execution with per-collector time limits.

Each collector runs on its own daemon thread and materializes its
findings there. The orchestrating thread is the only writer to the
accumulator: it merges each collector's findings, in collector order,
once every collector has finished or timed out.

A collector that exceeds the timeout is abandoned rather than joined.
Its thread is a daemon, so a hung subsystem query cannot keep the
process alive after the run.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Literal

from hosttriage.collectors.base import BaseCollector
from hosttriage.core import logging as log
from hosttriage.core.accumulator import FindingAccumulator
from hosttriage.core.errors import CollectorTimeoutError, collector_failure
from hosttriage.core.logging import CollectorProgress
from hosttriage.models.error import StructuredError
from hosttriage.models.finding import Finding

POLL_INTERVAL = 0.05

OutcomeStatus = Literal["ok", "error", "timeout"]


@dataclass
class CollectorOutcome:
    """Typed result of one collector call.

    ``findings`` always holds what the collector contributes to the run:
    its entries, or the entries gathered before a failure followed by
    the collector's marker Finding.
    """

    collector: str
    status: OutcomeStatus
    findings: list[Finding] = field(default_factory=list)
    error: StructuredError | None = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the run summary."""
        result: dict[str, Any] = {
            "collector": self.collector,
            "status": self.status,
            "findings": len(self.findings),
            "duration_ms": self.duration_ms,
        }
        if self.error:
            result["error"] = self.error.model_dump(mode="json", exclude_none=True)
        return result


def run_collector(collector: BaseCollector) -> CollectorOutcome:
    """Run one collector to completion, converting failure into data.

    Args:
        collector: Collector to run

    Returns:
        CollectorOutcome; never raises for collector errors
    """
    start = time.perf_counter()
    findings: list[Finding] = []

    try:
        for finding in collector.collect():
            findings.append(finding)
    except Exception as e:
        error = collector_failure(collector.name, e)
        log.warning(f"Collector '{collector.name}' failed: {error.message}", code=error.code)
        findings.append(collector.failure_finding(error))
        return CollectorOutcome(
            collector=collector.name,
            status="error",
            findings=findings,
            error=error,
            duration_ms=int((time.perf_counter() - start) * 1000),
        )

    return CollectorOutcome(
        collector=collector.name,
        status="ok",
        findings=findings,
        duration_ms=int((time.perf_counter() - start) * 1000),
    )


class _CollectorThread(threading.Thread):
    def __init__(self, collector: BaseCollector) -> None:
        super().__init__(name=f"collector-{collector.name}", daemon=True)
        self.collector = collector
        self.outcome: CollectorOutcome | None = None

    def run(self) -> None:
        self.outcome = run_collector(self.collector)


class CollectionRunner:
    """Runs collectors with bounded parallelism and a per-collector timeout."""

    def __init__(
        self,
        collectors: list[BaseCollector],
        max_workers: int = 4,
        timeout: float = 60.0,
        progress: CollectorProgress | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            collectors: Collectors to run; their order is the merge order
            max_workers: Concurrent collectors (1 = sequential)
            timeout: Seconds before a collector is reported as timed out
            progress: Optional progress reporter
        """
        self.collectors = collectors
        self.max_workers = max(1, max_workers)
        self.timeout = timeout
        self.progress = progress

    def run(self, accumulator: FindingAccumulator) -> list[CollectorOutcome]:
        """Run all collectors and merge their findings into the accumulator.

        Returns:
            Outcomes in collector order
        """
        pending = deque(enumerate(self.collectors))
        running: dict[int, tuple[_CollectorThread, float]] = {}
        outcomes: dict[int, CollectorOutcome] = {}

        while pending or running:
            while pending and len(running) < self.max_workers:
                index, collector = pending.popleft()
                thread = _CollectorThread(collector)
                log.debug(f"Starting collector '{collector.name}'")
                thread.start()
                running[index] = (thread, time.monotonic())

            for index, (thread, started) in list(running.items()):
                thread.join(timeout=POLL_INTERVAL)
                if not thread.is_alive():
                    outcome = thread.outcome or self._lost(thread.collector)
                elif time.monotonic() - started >= self.timeout:
                    outcome = self._timed_out(thread.collector, started)
                else:
                    continue

                del running[index]
                outcomes[index] = outcome
                if self.progress:
                    self.progress.collector_done(
                        outcome.collector,
                        len(outcome.findings),
                        status=outcome.status,
                        duration_ms=outcome.duration_ms,
                    )

        ordered = [outcomes[i] for i in sorted(outcomes)]
        for outcome in ordered:
            accumulator.extend(outcome.findings)

        if self.progress:
            self.progress.finish()
        return ordered

    def _timed_out(self, collector: BaseCollector, started: float) -> CollectorOutcome:
        error = CollectorTimeoutError(collector.name, self.timeout).to_structured()
        log.warning(error.message, code=error.code)
        return CollectorOutcome(
            collector=collector.name,
            status="timeout",
            findings=[collector.failure_finding(error)],
            error=error,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def _lost(self, collector: BaseCollector) -> CollectorOutcome:
        # Thread died without recording an outcome (BaseException in the worker)
        error = collector_failure(collector.name, RuntimeError("collector thread exited unexpectedly"))
        return CollectorOutcome(
            collector=collector.name,
            status="error",
            findings=[collector.failure_finding(error)],
            error=error,
        )
