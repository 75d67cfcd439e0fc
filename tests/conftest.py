from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import NamespaceUnavailableError, SourceAccessError, SourceUnavailableError
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import (
    ProcessSource,
    RawConnection,
    RawProcess,
    RawService,
    RawTask,
    RegistrySource,
    RegistryValue,
    ServiceManagerSource,
    SourceSet,
    TaskSchedulerSource,
    WmiSource,
)

FIXED_TIME = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)
FIXED_STAMP = "2026-10-19T12:00:00+00:00"

HKCU_RUN = r"HKCU\Software\Microsoft\Windows\CurrentVersion\Run"
HKLM_RUN = r"HKLM\Software\Microsoft\Windows\CurrentVersion\Run"
IFEO_ROOT = r"HKLM\Software\Microsoft\Windows NT\CurrentVersion\Image File Execution Options"


class FakeRegistry(RegistrySource):
    def __init__(
        self,
        values: dict[str, list[RegistryValue]] | None = None,
        subkeys: dict[str, list[str]] | None = None,
        denied: set[str] | None = None,
    ) -> None:
        self.values = values or {}
        self.subkeys = subkeys or {}
        self.denied = denied or set()

    def _check(self, key_path: str) -> None:
        if key_path in self.denied:
            raise SourceAccessError(key_path)

    def iter_values(self, key_path: str) -> Iterator[RegistryValue]:
        self._check(key_path)
        yield from self.values.get(key_path, [])

    def iter_subkeys(self, key_path: str) -> Iterator[str]:
        self._check(key_path)
        yield from self.subkeys.get(key_path, [])

    def get_value(self, key_path: str, name: str) -> Any | None:
        self._check(key_path)
        for value in self.values.get(key_path, []):
            if value.name == name:
                return value.data
        return None


class FakeTaskScheduler(TaskSchedulerSource):
    def __init__(self, tasks: list[RawTask] | None = None, error: str | None = None) -> None:
        self.tasks = tasks or []
        self.error = error

    def iter_tasks(self) -> Iterator[RawTask]:
        if self.error:
            raise SourceUnavailableError("Task Scheduler", self.error)
        yield from self.tasks


class FakeServiceManager(ServiceManagerSource):
    def __init__(self, services: list[RawService] | None = None, error: str | None = None) -> None:
        self.services = services or []
        self.error = error

    def iter_services(self) -> Iterator[RawService]:
        if self.error:
            raise SourceUnavailableError("Service Control Manager", self.error)
        yield from self.services


class FakeWmi(WmiSource):
    def __init__(
        self,
        instances: dict[str, list[dict[str, Any]]] | None = None,
        unavailable: bool = False,
    ) -> None:
        self.instances = instances or {}
        self.unavailable = unavailable

    def iter_instances(self, namespace: str, class_name: str) -> Iterator[dict[str, Any]]:
        if self.unavailable:
            raise NamespaceUnavailableError(namespace, "Access denied")
        yield from self.instances.get(class_name, [])


class FakeProcessSource(ProcessSource):
    def __init__(
        self,
        processes: list[RawProcess] | None = None,
        connections: list[RawConnection] | None = None,
    ) -> None:
        self.processes = processes or []
        self.connections = connections or []

    def iter_processes(self) -> Iterator[RawProcess]:
        yield from self.processes

    def iter_connections(self) -> Iterator[RawConnection]:
        yield from self.connections


def fixed_clock() -> datetime:
    return FIXED_TIME


def make_sources(**overrides: Any) -> SourceSet:
    sources = SourceSet(
        registry=FakeRegistry(),
        tasks=FakeTaskScheduler(),
        services=FakeServiceManager(),
        wmi=FakeWmi(),
        processes=FakeProcessSource(),
    )
    for name, value in overrides.items():
        setattr(sources, name, value)
    return sources


@pytest.fixture
def normalizer() -> FindingNormalizer:
    return FindingNormalizer(clock=fixed_clock)


@pytest.fixture
def config(tmp_path: Path) -> TriageConfig:
    return TriageConfig(
        output_root=tmp_path / "runs",
        startup_folders=[tmp_path / "no-such-startup"],
        collector_timeout=5.0,
    )
