"""Base collector interface for hosttriage."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import ClassVar

from hosttriage.core.config import TriageConfig
from hosttriage.models.error import StructuredError
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import SourceSet


class BaseCollector(ABC):
    """Base class for all persistence collectors.

    A collector queries one OS subsystem and lazily yields Findings.
    Expected absence yields nothing. A failure that escapes ``collect``
    is turned by the runner into the collector's ``failure_finding``.
    """

    # Collector metadata (must be set by subclasses)
    name: ClassVar[str]
    category: ClassVar[FindingCategory]
    description: ClassVar[str] = ""

    def __init__(self, normalizer: FindingNormalizer) -> None:
        self.normalizer = normalizer

    @classmethod
    @abstractmethod
    def from_config(
        cls,
        sources: SourceSet,
        config: TriageConfig,
        normalizer: FindingNormalizer,
    ) -> "BaseCollector":
        """Build the collector for a run."""
        ...

    @abstractmethod
    def collect(self) -> Iterator[Finding]:
        """Yield findings for this collector's subsystem."""
        ...

    @property
    def marker_location(self) -> str:
        """Location recorded on this collector's marker Findings."""
        return self.name

    def failure_finding(self, error: StructuredError) -> Finding:
        """Single Finding recording a total collector failure."""
        return self.normalizer.error_marker(self.category, self.marker_location, error.message)


class CollectorRegistry:
    """Registry of available collectors, in registration order."""

    _collectors: ClassVar[dict[str, type[BaseCollector]]] = {}

    @classmethod
    def register(cls, collector_class: type[BaseCollector]) -> type[BaseCollector]:
        """Register a collector class.

        Args:
            collector_class: Collector class to register

        Returns:
            The registered class (for use as decorator)
        """
        cls._collectors[collector_class.name] = collector_class
        return collector_class

    @classmethod
    def get(cls, name: str) -> type[BaseCollector] | None:
        return cls._collectors.get(name)

    @classmethod
    def names(cls) -> list[str]:
        return list(cls._collectors.keys())

    @classmethod
    def all(cls) -> list[type[BaseCollector]]:
        return list(cls._collectors.values())


def build_collectors(
    sources: SourceSet,
    config: TriageConfig,
    normalizer: FindingNormalizer,
    names: list[str] | None = None,
) -> list[BaseCollector]:
    """Instantiate the selected collectors.

    Args:
        sources: OS capabilities to query
        config: Run configuration
        normalizer: Shared normalizer (one clock per run)
        names: Collector names to include (None or empty = all)

    Returns:
        Collectors in registration order

    Raises:
        ValueError: If a requested name is not registered
    """
    selected = names or CollectorRegistry.names()
    unknown = [n for n in selected if CollectorRegistry.get(n) is None]
    if unknown:
        raise ValueError(
            f"Unknown collector(s): {', '.join(unknown)}. "
            f"Available: {', '.join(CollectorRegistry.names())}"
        )

    return [
        collector_class.from_config(sources, config, normalizer)
        for collector_class in CollectorRegistry.all()
        if collector_class.name in selected
    ]
