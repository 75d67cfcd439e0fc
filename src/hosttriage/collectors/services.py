r"""Service collector.

Location is the service's configuration key
(HKLM\SYSTEM\CurrentControlSet\Services\<name>) so service rows group
with other registry evidence when reviewed side by side.
"""

from collections.abc import Iterator
from typing import ClassVar

from hosttriage.collectors.base import BaseCollector, CollectorRegistry
from hosttriage.core.config import TriageConfig
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import RawService, ServiceManagerSource, SourceSet

SERVICES_KEY = r"HKLM\SYSTEM\CurrentControlSet\Services"


def encode_service_state(service: RawService) -> str:
    """Render start mode and current state as ``StartMode=X; State=Y``."""
    start_mode = service.start_mode or "Unknown"
    state = service.state or "Unknown"
    return f"StartMode={start_mode}; State={state}"


@CollectorRegistry.register
class ServiceCollector(BaseCollector):
    """One Finding per installed service."""

    name: ClassVar[str] = "services"
    category: ClassVar[FindingCategory] = FindingCategory.SERVICE
    description: ClassVar[str] = "Installed services and their binaries"

    def __init__(self, manager: ServiceManagerSource, normalizer: FindingNormalizer) -> None:
        super().__init__(normalizer)
        self.manager = manager

    @classmethod
    def from_config(
        cls,
        sources: SourceSet,
        config: TriageConfig,
        normalizer: FindingNormalizer,
    ) -> "ServiceCollector":
        return cls(sources.services, normalizer)

    @property
    def marker_location(self) -> str:
        return "ServiceControlManager"

    def collect(self) -> Iterator[Finding]:
        for service in self.manager.iter_services():
            yield self.normalizer.normalize(
                self.category,
                location=f"{SERVICES_KEY}\\{service.name}",
                name=service.name,
                value=service.binary_path,
                user=service.account,
                extra=encode_service_state(service),
            )
