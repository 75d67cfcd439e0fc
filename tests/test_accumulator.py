import threading

import pytest

from hosttriage.core.accumulator import FindingAccumulator
from hosttriage.core.errors import AccumulatorFrozenError
from hosttriage.models.finding import FindingCategory
from hosttriage.normalizer import FindingNormalizer


def test_preserves_insertion_order(normalizer: FindingNormalizer) -> None:
    accumulator = FindingAccumulator()
    first = normalizer.normalize(FindingCategory.SERVICE, "loc", "b", "1")
    second = normalizer.normalize(FindingCategory.IFEO, "loc", "a", "2")

    accumulator.append(first)
    accumulator.extend([second, first])

    assert list(accumulator) == [first, second, first]
    assert len(accumulator) == 3


def test_frozen_accumulator_rejects_appends(normalizer: FindingNormalizer) -> None:
    accumulator = FindingAccumulator()
    finding = normalizer.normalize(FindingCategory.SERVICE, "loc", "svc", "x")
    accumulator.append(finding)

    frozen = accumulator.freeze()

    assert frozen == (finding,)
    assert accumulator.frozen
    with pytest.raises(AccumulatorFrozenError):
        accumulator.append(finding)
    with pytest.raises(AccumulatorFrozenError):
        accumulator.extend([finding])


def test_concurrent_appends_lose_nothing(normalizer: FindingNormalizer) -> None:
    accumulator = FindingAccumulator()
    finding = normalizer.normalize(FindingCategory.STARTUP_FOLDER, "loc", "f", "v")

    def worker() -> None:
        for _ in range(500):
            accumulator.append(finding)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(accumulator) == 4000
