"""Abstract source interfaces and the raw records they yield.

Sources are read-only. Contract shared by all of them:

- Expected absence (missing key, empty folder) yields nothing.
- Denial on one location raises SourceAccessError.
- A subsystem that cannot be reached at all raises
  SourceUnavailableError (NamespaceUnavailableError for WMI).
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class RegistryValue:
    """One value entry under a registry key."""

    name: str
    data: Any
    value_type: int = 0


@dataclass(frozen=True)
class RawTaskAction:
    """A scheduled task action."""

    action_type: str  # Exec, ComHandler, SendEmail, ShowMessage
    execute: str = ""
    arguments: str = ""


@dataclass
class RawTask:
    """A registered scheduled task as reported by the scheduler."""

    path: str  # Folder path, e.g. \Microsoft\Windows\Defrag\
    name: str
    state: str = ""
    principal: str = ""
    principal_error: str | None = None  # Set when the run-as lookup failed
    actions: list[RawTaskAction] = field(default_factory=list)


@dataclass
class RawService:
    """An installed service as reported by the service manager."""

    name: str
    display_name: str = ""
    binary_path: str = ""
    account: str = ""
    start_mode: str = ""
    state: str = ""


@dataclass
class RawProcess:
    """A running process."""

    pid: int
    ppid: int | None = None
    name: str = ""
    path: str = ""
    command_line: list[str] | str = ""
    user: str = ""
    create_time: datetime | None = None


@dataclass
class RawConnection:
    """An inet socket with its owning PID."""

    local_address: str = ""
    local_port: int | None = None
    remote_address: str = ""
    remote_port: int | None = None
    state: str = ""
    pid: int | None = None


class RegistrySource(ABC):
    """Read-only access to registry keys addressed as ``HKLM\\Path``."""

    @abstractmethod
    def iter_values(self, key_path: str) -> Iterator[RegistryValue]:
        """Yield the value entries of a key."""
        ...

    @abstractmethod
    def iter_subkeys(self, key_path: str) -> Iterator[str]:
        """Yield the names of a key's direct subkeys."""
        ...

    @abstractmethod
    def get_value(self, key_path: str, name: str) -> Any | None:
        """Return one value's data, or None if the key or value is absent."""
        ...


class TaskSchedulerSource(ABC):
    """Enumerates registered scheduled tasks."""

    @abstractmethod
    def iter_tasks(self) -> Iterator[RawTask]:
        ...


class ServiceManagerSource(ABC):
    """Enumerates installed services."""

    @abstractmethod
    def iter_services(self) -> Iterator[RawService]:
        ...


class WmiSource(ABC):
    """Queries instances of a class in a management namespace."""

    @abstractmethod
    def iter_instances(self, namespace: str, class_name: str) -> Iterator[dict[str, Any]]:
        """Yield each instance's properties as a dict."""
        ...


class ProcessSource(ABC):
    """Process table and socket table."""

    @abstractmethod
    def iter_processes(self) -> Iterator[RawProcess]:
        ...

    @abstractmethod
    def iter_connections(self) -> Iterator[RawConnection]:
        ...


@dataclass
class SourceSet:
    """Bundle of the capabilities a collection run needs."""

    registry: RegistrySource
    tasks: TaskSchedulerSource
    services: ServiceManagerSource
    wmi: WmiSource
    processes: ProcessSource | None = None
