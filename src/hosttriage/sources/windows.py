r"""Live Windows implementations of the source interfaces.

- Registry: winreg
- Scheduled tasks: Schedule.Service COM API via pywin32
- Services, processes, sockets: psutil
- Event subscriptions: wmi (root\subscription)

Platform modules are imported inside the methods so the package imports
on any host; off Windows each source raises SourceUnavailableError and
the collector turns that into a marker Finding.
"""

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from hosttriage.core import logging as log
from hosttriage.core.errors import (
    NamespaceUnavailableError,
    SourceAccessError,
    SourceUnavailableError,
)
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

HIVE_ALIASES = {
    "HKLM": "HKEY_LOCAL_MACHINE",
    "HKCU": "HKEY_CURRENT_USER",
    "HKU": "HKEY_USERS",
    "HKCR": "HKEY_CLASSES_ROOT",
}

# IRegisteredTask.State
TASK_STATES = {
    0: "Unknown",
    1: "Disabled",
    2: "Queued",
    3: "Ready",
    4: "Running",
}

# IAction.Type
TASK_ACTION_TYPES = {
    0: "Exec",
    5: "ComHandler",
    6: "SendEmail",
    7: "ShowMessage",
}

TASK_ENUM_HIDDEN = 1


def _require_windows(source: str) -> None:
    if sys.platform != "win32":
        raise SourceUnavailableError(source, f"not supported on platform '{sys.platform}'")


@contextmanager
def _com_initialized() -> Iterator[None]:
    """Initialise COM for the calling thread (collectors run on workers)."""
    import pythoncom

    pythoncom.CoInitialize()
    try:
        yield
    finally:
        pythoncom.CoUninitialize()


def split_key_path(key_path: str) -> tuple[str, str]:
    r"""Split ``HKLM\Software\X`` into (``HKEY_LOCAL_MACHINE``, ``Software\X``)."""
    hive, _, sub_key = key_path.partition("\\")
    hive = hive.rstrip(":").upper()
    return HIVE_ALIASES.get(hive, hive), sub_key


class WinRegistrySource(RegistrySource):
    """Registry reads through winreg, always against the 64-bit view."""

    def _open(self, key_path: str) -> Any | None:
        _require_windows("Registry")
        import winreg

        hive_name, sub_key = split_key_path(key_path)
        hive = getattr(winreg, hive_name, None)
        if hive is None:
            raise SourceAccessError(key_path, f"unknown hive '{hive_name}'")

        try:
            return winreg.OpenKey(hive, sub_key, 0, winreg.KEY_READ | winreg.KEY_WOW64_64KEY)
        except FileNotFoundError:
            return None
        except PermissionError as e:
            raise SourceAccessError(key_path, str(e))

    def iter_values(self, key_path: str) -> Iterator[RegistryValue]:
        key = self._open(key_path)
        if key is None:
            return
        import winreg

        with key:
            index = 0
            while True:
                try:
                    name, data, value_type = winreg.EnumValue(key, index)
                except OSError:
                    break
                yield RegistryValue(name=name, data=data, value_type=value_type)
                index += 1

    def iter_subkeys(self, key_path: str) -> Iterator[str]:
        key = self._open(key_path)
        if key is None:
            return
        import winreg

        with key:
            index = 0
            while True:
                try:
                    name = winreg.EnumKey(key, index)
                except OSError:
                    break
                yield name
                index += 1

    def get_value(self, key_path: str, name: str) -> Any | None:
        key = self._open(key_path)
        if key is None:
            return None
        import winreg

        with key:
            try:
                data, _ = winreg.QueryValueEx(key, name)
            except FileNotFoundError:
                return None
            return data


class ComTaskSchedulerSource(TaskSchedulerSource):
    """Walks every task folder through the Schedule.Service COM object."""

    def iter_tasks(self) -> Iterator[RawTask]:
        _require_windows("Task Scheduler")
        import pywintypes
        import win32com.client

        with _com_initialized():
            try:
                scheduler = win32com.client.Dispatch("Schedule.Service")
                scheduler.Connect()
                root = scheduler.GetFolder("\\")
            except pywintypes.com_error as e:
                raise SourceUnavailableError("Task Scheduler", str(e))

            yield from self.walk(root, pywintypes.com_error)

    def walk(self, root: Any, com_error: type[Exception]) -> Iterator[RawTask]:
        """Breadth-first walk of task folders from ``root``.

        A folder or task that raises ``com_error`` is logged and skipped;
        the walk continues with the next one.
        """
        folders = [root]
        while folders:
            folder = folders.pop(0)
            try:
                folder_path = folder.Path if folder.Path.endswith("\\") else folder.Path + "\\"
                folders.extend(folder.GetFolders(0))
                tasks = list(folder.GetTasks(TASK_ENUM_HIDDEN))
            except com_error as e:
                log.debug("Task folder not readable", error=str(e))
                continue

            for index, task in enumerate(tasks):
                try:
                    raw = self._convert(task, folder_path)
                except com_error as e:
                    log.debug("Task not readable", folder=folder_path, index=index, error=str(e))
                    continue
                yield raw

    def _convert(self, task: Any, folder_path: str) -> RawTask:
        raw = RawTask(
            path=folder_path,
            name=task.Name,
            state=TASK_STATES.get(task.State, str(task.State)),
        )

        definition = task.Definition
        try:
            raw.principal = definition.Principal.UserId or ""
        except Exception as e:
            raw.principal_error = str(e) or type(e).__name__

        for action in definition.Actions:
            action_type = TASK_ACTION_TYPES.get(action.Type, str(action.Type))
            if action_type == "Exec":
                raw.actions.append(
                    RawTaskAction(
                        action_type=action_type,
                        execute=action.Path or "",
                        arguments=action.Arguments or "",
                    )
                )
            elif action_type == "ComHandler":
                raw.actions.append(
                    RawTaskAction(
                        action_type=action_type,
                        execute=action.ClassId or "",
                        arguments=action.Data or "",
                    )
                )
            else:
                raw.actions.append(RawTaskAction(action_type=action_type))

        return raw


class PsutilServiceSource(ServiceManagerSource):
    """Service enumeration via psutil.win_service_iter()."""

    def iter_services(self) -> Iterator[RawService]:
        _require_windows("Service Control Manager")
        import psutil

        try:
            services = list(psutil.win_service_iter())
        except (OSError, psutil.Error) as e:
            raise SourceUnavailableError("Service Control Manager", str(e))

        for service in services:
            try:
                info = service.as_dict()
            except psutil.Error as e:
                log.debug("Service query failed", service=service.name(), error=str(e))
                yield RawService(name=service.name())
                continue

            yield RawService(
                name=info.get("name") or service.name(),
                display_name=info.get("display_name") or "",
                binary_path=info.get("binpath") or "",
                account=info.get("username") or "",
                start_mode=info.get("start_type") or "",
                state=info.get("status") or "",
            )


class WmiSubscriptionSource(WmiSource):
    """Instance queries through the wmi package."""

    def iter_instances(self, namespace: str, class_name: str) -> Iterator[dict[str, Any]]:
        if sys.platform != "win32":
            raise NamespaceUnavailableError(namespace, f"not supported on platform '{sys.platform}'")
        import wmi

        with _com_initialized():
            try:
                connection = wmi.WMI(namespace=namespace)
                instances = connection.query(f"SELECT * FROM {class_name}")
            except wmi.x_wmi as e:
                raise NamespaceUnavailableError(namespace, str(e))

            for instance in instances:
                # Raw COM values keep reference properties as object paths
                yield {prop.Name: prop.Value for prop in instance.ole_object.Properties_}


class PsutilProcessSource(ProcessSource):
    """Process and socket tables via psutil."""

    def __init__(self, kind: str = "inet") -> None:
        self.kind = kind

    def iter_processes(self) -> Iterator[RawProcess]:
        import psutil

        attrs = ["pid", "ppid", "name", "exe", "cmdline", "username", "create_time"]
        for proc in psutil.process_iter(attrs=attrs, ad_value=None):
            info = proc.info
            created = info.get("create_time")
            yield RawProcess(
                pid=info["pid"],
                ppid=info.get("ppid"),
                name=info.get("name") or "",
                path=info.get("exe") or "",
                command_line=info.get("cmdline") or "",
                user=info.get("username") or "",
                create_time=datetime.fromtimestamp(created, UTC) if created else None,
            )

    def iter_connections(self) -> Iterator[RawConnection]:
        import psutil

        try:
            connections = psutil.net_connections(kind=self.kind)
        except psutil.AccessDenied as e:
            raise SourceAccessError("socket table", str(e))

        for conn in connections:
            yield RawConnection(
                local_address=conn.laddr.ip if conn.laddr else "",
                local_port=conn.laddr.port if conn.laddr else None,
                remote_address=conn.raddr.ip if conn.raddr else "",
                remote_port=conn.raddr.port if conn.raddr else None,
                state=conn.status or "",
                pid=conn.pid,
            )


def live_sources() -> SourceSet:
    """Sources bound to the running host."""
    return SourceSet(
        registry=WinRegistrySource(),
        tasks=ComTaskSchedulerSource(),
        services=PsutilServiceSource(),
        wmi=WmiSubscriptionSource(),
        processes=PsutilProcessSource(),
    )
