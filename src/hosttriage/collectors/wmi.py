r"""WMI event subscription collector.

Three sub-scans against the subscription namespace (root\subscription):
- __EventFilter: event query definitions
- CommandLineEventConsumer / ActiveScriptEventConsumer: event handlers
- __FilterToConsumerBinding: links filters to consumers

The namespace is commonly denied to non-elevated callers. That case is
reported as a single informational Finding rather than a failure.
"""

import re
from collections.abc import Iterator
from typing import Any, ClassVar

from hosttriage.collectors.base import BaseCollector, CollectorRegistry
from hosttriage.core import logging as log
from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import NamespaceUnavailableError
from hosttriage.models.error import StructuredError
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import SourceSet, WmiSource

EVENT_FILTER_CLASS = "__EventFilter"
BINDING_CLASS = "__FilterToConsumerBinding"

# Consumer class -> (value properties in preference order, extra property)
CONSUMER_CLASSES: dict[str, tuple[tuple[str, ...], str]] = {
    "CommandLineEventConsumer": (("CommandLineTemplate", "ExecutablePath"), "ExecutablePath"),
    "ActiveScriptEventConsumer": (("ScriptText", "ScriptFileName"), "ScriptingEngine"),
}

# __EventFilter.Name="x" or \\HOST\ROOT\subscription:CommandLineEventConsumer.Name="y"
_REFERENCE_PATTERN = re.compile(r'(?:^|:)(?P<cls>\w+)\.Name="(?P<name>(?:[^"\\]|\\.)*)"')


def parse_reference(reference: Any) -> tuple[str, str]:
    """Split an object path into (class name, instance name).

    Unrecognized paths come back as ("", path) so the raw reference is
    still reported.
    """
    text = str(reference or "")
    match = _REFERENCE_PATTERN.search(text)
    if not match:
        return "", text
    return match.group("cls"), match.group("name").replace('\\"', '"')


def _first_present(instance: dict[str, Any], properties: tuple[str, ...]) -> Any:
    for prop in properties:
        value = instance.get(prop)
        if value:
            return value
    return ""


def _consumer_extra(class_name: str, detail: Any) -> str:
    detail = str(detail or "").strip()
    return f"{class_name}: {detail}" if detail else class_name


@CollectorRegistry.register
class WmiSubscriptionCollector(BaseCollector):
    """Event filters, consumers and filter-to-consumer bindings."""

    name: ClassVar[str] = "wmi"
    category: ClassVar[FindingCategory] = FindingCategory.WMI
    description: ClassVar[str] = "WMI event subscription filters, consumers and bindings"

    def __init__(
        self,
        wmi: WmiSource,
        normalizer: FindingNormalizer,
        namespace: str = r"root\subscription",
    ) -> None:
        super().__init__(normalizer)
        self.wmi = wmi
        self.namespace = namespace

    @classmethod
    def from_config(
        cls,
        sources: SourceSet,
        config: TriageConfig,
        normalizer: FindingNormalizer,
    ) -> "WmiSubscriptionCollector":
        return cls(sources.wmi, normalizer, namespace=config.wmi_namespace)

    @property
    def marker_location(self) -> str:
        return self.namespace

    def failure_finding(self, error: StructuredError) -> Finding:
        return self.normalizer.info_marker(self.category, self.namespace, error.message)

    def collect(self) -> Iterator[Finding]:
        unavailable: NamespaceUnavailableError | None = None

        for scan in (self._filters, self._consumers, self._bindings):
            try:
                findings = list(scan())
            except NamespaceUnavailableError as e:
                log.debug(
                    "Subscription namespace not accessible",
                    namespace=self.namespace,
                    scan=scan.__name__,
                )
                unavailable = unavailable or e
                continue
            yield from findings

        if unavailable is not None:
            yield self.normalizer.info_marker(self.category, self.namespace, unavailable.error.message)

    def _filters(self) -> Iterator[Finding]:
        for instance in self.wmi.iter_instances(self.namespace, EVENT_FILTER_CLASS):
            yield self.normalizer.normalize(
                FindingCategory.WMI_EVENT_FILTER,
                location=self.namespace,
                name=instance.get("Name"),
                value=instance.get("Query"),
                extra=instance.get("QueryLanguage"),
            )

    def _consumers(self) -> Iterator[Finding]:
        for class_name, (value_props, extra_prop) in CONSUMER_CLASSES.items():
            for instance in self.wmi.iter_instances(self.namespace, class_name):
                yield self.normalizer.normalize(
                    FindingCategory.WMI_CONSUMER,
                    location=self.namespace,
                    name=instance.get("Name"),
                    value=_first_present(instance, value_props),
                    extra=_consumer_extra(class_name, instance.get(extra_prop)),
                )

    def _bindings(self) -> Iterator[Finding]:
        for instance in self.wmi.iter_instances(self.namespace, BINDING_CLASS):
            _, filter_name = parse_reference(instance.get("Filter"))
            consumer_class, consumer_name = parse_reference(instance.get("Consumer"))
            yield self.normalizer.normalize(
                FindingCategory.WMI_BINDING,
                location=self.namespace,
                name=filter_name,
                value=f"{filter_name} -> {consumer_name}",
                extra=consumer_class,
            )
