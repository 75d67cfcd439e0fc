"""OS capabilities queried by the collectors.

Each subsystem is an abstract source so collectors can be driven by the
live Windows implementations or by in-memory fakes.
"""

from hosttriage.sources.base import (
    ProcessSource,
    RawConnection,
    RawProcess,
    RawService,
    RawTask,
    RawTaskAction,
    RegistrySource,
    RegistryValue,
    ServiceManagerSource,
    SourceSet,
    TaskSchedulerSource,
    WmiSource,
)

__all__ = [
    "ProcessSource",
    "RawConnection",
    "RawProcess",
    "RawService",
    "RawTask",
    "RawTaskAction",
    "RegistrySource",
    "RegistryValue",
    "ServiceManagerSource",
    "SourceSet",
    "TaskSchedulerSource",
    "WmiSource",
]
