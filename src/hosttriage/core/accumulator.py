"""Append-only accumulation of Findings for one run."""

import threading
from collections.abc import Iterable, Iterator

from hosttriage.core.errors import AccumulatorFrozenError
from hosttriage.models.finding import Finding


class FindingAccumulator:
    """Ordered, append-only collection of Findings.

    Appends are lock-protected so collectors running on worker threads
    can share one instance. The lock is held only for the list append.
    Once frozen, the contents are fixed and further appends raise.
    """

    def __init__(self) -> None:
        self._findings: list[Finding] = []
        self._lock = threading.Lock()
        self._frozen = False

    def append(self, finding: Finding) -> None:
        """Append one Finding."""
        with self._lock:
            if self._frozen:
                raise AccumulatorFrozenError()
            self._findings.append(finding)

    def extend(self, findings: Iterable[Finding]) -> None:
        """Append a collector's findings as one contiguous block."""
        batch = list(findings)
        with self._lock:
            if self._frozen:
                raise AccumulatorFrozenError()
            self._findings.extend(batch)

    def freeze(self) -> tuple[Finding, ...]:
        """Stop accepting findings and return the frozen contents."""
        with self._lock:
            self._frozen = True
            return tuple(self._findings)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def snapshot(self) -> tuple[Finding, ...]:
        """Current contents in insertion order."""
        with self._lock:
            return tuple(self._findings)

    def __len__(self) -> int:
        return len(self._findings)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self.snapshot())
