r"""Registry Run/RunOnce key collector.

Locations (64-bit view plus the 32-bit emulation branch):
- HKCU\Software\Microsoft\Windows\CurrentVersion\Run, RunOnce
- HKLM\Software\Microsoft\Windows\CurrentVersion\Run, RunOnce
- HKLM\Software\WOW6432Node\Microsoft\Windows\CurrentVersion\Run, RunOnce
"""

from collections.abc import Iterator
from typing import ClassVar

from hosttriage.collectors.base import BaseCollector, CollectorRegistry
from hosttriage.core import logging as log
from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import SourceAccessError
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer, registry_text
from hosttriage.sources.base import RegistrySource, SourceSet

# Provider metadata that registry providers report alongside real values
PSEUDO_PROPERTIES = frozenset(
    {"PSPath", "PSParentPath", "PSChildName", "PSDrive", "PSProvider"}
)

DEFAULT_VALUE_NAME = "(Default)"


@CollectorRegistry.register
class RegistryRunCollector(BaseCollector):
    """One Finding per value entry under each Run/RunOnce key."""

    name: ClassVar[str] = "registry_run"
    category: ClassVar[FindingCategory] = FindingCategory.REGISTRY_RUN
    description: ClassVar[str] = "Registry Run and RunOnce value entries"

    def __init__(
        self,
        registry: RegistrySource,
        key_paths: list[str],
        normalizer: FindingNormalizer,
    ) -> None:
        super().__init__(normalizer)
        self.registry = registry
        self.key_paths = key_paths

    @classmethod
    def from_config(
        cls,
        sources: SourceSet,
        config: TriageConfig,
        normalizer: FindingNormalizer,
    ) -> "RegistryRunCollector":
        return cls(sources.registry, config.run_key_paths, normalizer)

    def collect(self) -> Iterator[Finding]:
        for key_path in self.key_paths:
            yield from self._collect_key(key_path)

    def _collect_key(self, key_path: str) -> Iterator[Finding]:
        try:
            values = list(self.registry.iter_values(key_path))
        except SourceAccessError as e:
            log.debug("Run key not readable", key=key_path, error=e.error.message)
            return

        for entry in values:
            if entry.name in PSEUDO_PROPERTIES:
                continue
            yield self.normalizer.normalize(
                self.category,
                location=key_path,
                name=entry.name or DEFAULT_VALUE_NAME,
                value=registry_text(entry.data, entry.value_type),
            )
