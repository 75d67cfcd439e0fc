"""Image File Execution Options debugger collector."""

from collections.abc import Iterator
from typing import ClassVar

from hosttriage.collectors.base import BaseCollector, CollectorRegistry
from hosttriage.core import logging as log
from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import SourceAccessError
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import RegistrySource, SourceSet

DEBUGGER_VALUE = "Debugger"


@CollectorRegistry.register
class IfeoCollector(BaseCollector):
    """Subkeys of the IFEO root that define a Debugger value.

    Subkeys without one are skipped silently; most of them only carry
    mitigation options.
    """

    name: ClassVar[str] = "ifeo"
    category: ClassVar[FindingCategory] = FindingCategory.IFEO
    description: ClassVar[str] = "IFEO debugger redirections"

    def __init__(
        self,
        registry: RegistrySource,
        roots: list[str],
        normalizer: FindingNormalizer,
    ) -> None:
        super().__init__(normalizer)
        self.registry = registry
        self.roots = roots

    @classmethod
    def from_config(
        cls,
        sources: SourceSet,
        config: TriageConfig,
        normalizer: FindingNormalizer,
    ) -> "IfeoCollector":
        return cls(sources.registry, config.ifeo_roots, normalizer)

    def collect(self) -> Iterator[Finding]:
        for root in self.roots:
            yield from self._collect_root(root)

    def _collect_root(self, root: str) -> Iterator[Finding]:
        try:
            subkeys = list(self.registry.iter_subkeys(root))
        except SourceAccessError as e:
            log.debug("IFEO root not readable", key=root, error=e.error.message)
            return

        for subkey in subkeys:
            try:
                debugger = self.registry.get_value(f"{root}\\{subkey}", DEBUGGER_VALUE)
            except SourceAccessError as e:
                log.debug("IFEO subkey not readable", subkey=subkey, error=e.error.message)
                continue

            if debugger is None:
                continue

            yield self.normalizer.normalize(
                self.category,
                location=root,
                name=subkey,
                value=debugger,
            )
