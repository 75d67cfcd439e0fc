import threading
from collections.abc import Iterator
from typing import ClassVar

from hosttriage.collectors.base import BaseCollector
from hosttriage.core.accumulator import FindingAccumulator
from hosttriage.core.runner import CollectionRunner, run_collector
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer


class StaticCollector(BaseCollector):
    name: ClassVar[str] = "static"
    category: ClassVar[FindingCategory] = FindingCategory.SERVICE

    def __init__(self, normalizer: FindingNormalizer, label: str, count: int = 1) -> None:
        super().__init__(normalizer)
        self.label = label
        self.count = count

    @classmethod
    def from_config(cls, sources, config, normalizer):  # pragma: no cover
        raise NotImplementedError

    def collect(self) -> Iterator[Finding]:
        for i in range(self.count):
            yield self.normalizer.normalize(self.category, self.label, f"entry{i}", "value")


class FailingCollector(StaticCollector):
    name: ClassVar[str] = "failing"
    category: ClassVar[FindingCategory] = FindingCategory.SCHEDULED_TASK

    def collect(self) -> Iterator[Finding]:
        yield from super().collect()
        raise RuntimeError("scheduler crashed")


class HangingCollector(StaticCollector):
    name: ClassVar[str] = "hanging"
    category: ClassVar[FindingCategory] = FindingCategory.WMI_BINDING

    def __init__(self, normalizer: FindingNormalizer, release: threading.Event) -> None:
        super().__init__(normalizer, "hang")
        self.release = release

    def collect(self) -> Iterator[Finding]:
        self.release.wait(5)
        yield from super().collect()


def test_run_collector_success(normalizer: FindingNormalizer) -> None:
    outcome = run_collector(StaticCollector(normalizer, "loc", count=2))

    assert outcome.status == "ok"
    assert len(outcome.findings) == 2
    assert outcome.error is None
    assert outcome.to_dict()["findings"] == 2


def test_run_collector_keeps_partial_findings_and_marks_failure(
    normalizer: FindingNormalizer,
) -> None:
    outcome = run_collector(FailingCollector(normalizer, "loc", count=1))

    assert outcome.status == "error"
    assert [f.name for f in outcome.findings] == ["entry0", "ERROR"]
    marker = outcome.findings[-1]
    assert marker.category is FindingCategory.SCHEDULED_TASK
    assert marker.location == "failing"
    assert marker.value == "scheduler crashed"
    assert outcome.error.code == "COLLECTOR_FAILED"
    assert outcome.to_dict()["error"]["code"] == "COLLECTOR_FAILED"


def test_failure_does_not_stop_other_collectors(normalizer: FindingNormalizer) -> None:
    collectors = [
        StaticCollector(normalizer, "first"),
        FailingCollector(normalizer, "second", count=0),
        StaticCollector(normalizer, "third"),
    ]
    accumulator = FindingAccumulator()

    outcomes = CollectionRunner(collectors, max_workers=3, timeout=5).run(accumulator)

    assert [o.status for o in outcomes] == ["ok", "error", "ok"]
    assert [(f.location, f.name) for f in accumulator] == [
        ("first", "entry0"),
        ("failing", "ERROR"),
        ("third", "entry0"),
    ]


def test_merge_follows_collector_order_regardless_of_workers(
    normalizer: FindingNormalizer,
) -> None:
    collectors = [StaticCollector(normalizer, f"c{i}", count=3) for i in range(5)]

    sequential = FindingAccumulator()
    parallel = FindingAccumulator()
    CollectionRunner(collectors, max_workers=1).run(sequential)
    CollectionRunner(collectors, max_workers=4).run(parallel)

    assert list(sequential) == list(parallel)
    assert [f.location for f in parallel][::3] == ["c0", "c1", "c2", "c3", "c4"]


def test_timeout_produces_marker_and_run_completes(normalizer: FindingNormalizer) -> None:
    release = threading.Event()
    collectors = [HangingCollector(normalizer, release), StaticCollector(normalizer, "fast")]
    accumulator = FindingAccumulator()

    try:
        outcomes = CollectionRunner(collectors, max_workers=2, timeout=0.2).run(accumulator)
    finally:
        release.set()

    assert [o.status for o in outcomes] == ["timeout", "ok"]
    assert outcomes[0].error.code == "COLLECTOR_TIMEOUT"
    assert [(f.category, f.name) for f in accumulator] == [
        (FindingCategory.WMI_BINDING, "ERROR"),
        (FindingCategory.SERVICE, "entry0"),
    ]
    assert "timed out" in accumulator.snapshot()[0].value
