"""Run configuration for hosttriage.

Defaults cover a standard Windows workstation. A YAML file passed with
``--config`` overrides them, and CLI options override the file.
"""

import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from hosttriage.core.errors import ConfigError

RUN_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"
RUN_ONCE_KEY = r"Software\Microsoft\Windows\CurrentVersion\RunOnce"

# Order is preserved in the collected findings before sorting
DEFAULT_RUN_KEY_PATHS: list[str] = [
    rf"HKCU\{RUN_KEY}",
    rf"HKCU\{RUN_ONCE_KEY}",
    rf"HKLM\{RUN_KEY}",
    rf"HKLM\{RUN_ONCE_KEY}",
    r"HKLM\Software\WOW6432Node\Microsoft\Windows\CurrentVersion\Run",
    r"HKLM\Software\WOW6432Node\Microsoft\Windows\CurrentVersion\RunOnce",
]

DEFAULT_IFEO_ROOTS: list[str] = [
    r"HKLM\Software\Microsoft\Windows NT\CurrentVersion\Image File Execution Options",
    r"HKLM\Software\WOW6432Node\Microsoft\Windows NT\CurrentVersion\Image File Execution Options",
]

DEFAULT_WMI_NAMESPACE = r"root\subscription"

STARTUP_SUBPATH = ("Microsoft", "Windows", "Start Menu", "Programs", "Startup")


def default_startup_folders() -> list[Path]:
    """Machine-wide and current-user startup folders from the environment."""
    folders = []
    for variable in ("ProgramData", "APPDATA"):
        base = os.environ.get(variable)
        if base:
            folders.append(Path(base).joinpath(*STARTUP_SUBPATH))
    return folders


def default_output_root() -> Path:
    """Fixed system directory under which run directories are created."""
    if sys.platform == "win32":
        return Path(os.environ.get("ProgramData", r"C:\ProgramData")) / "HostTriage"
    return Path("/var/tmp/hosttriage")


class TriageConfig(BaseModel):
    """Settings for one collection run."""

    output_root: Path = Field(
        default_factory=default_output_root,
        description="Parent of timestamped run directories",
    )

    max_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Collector worker threads (1 = sequential)",
    )

    collector_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds before a collector is reported as timed out",
    )

    collectors: list[str] = Field(
        default_factory=list,
        description="Collector names to run (empty = all)",
    )

    run_key_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_RUN_KEY_PATHS))

    ifeo_roots: list[str] = Field(default_factory=lambda: list(DEFAULT_IFEO_ROOTS))

    startup_folders: list[Path] = Field(
        default_factory=list,
        description="Startup folders (empty = derived from the environment)",
    )

    wmi_namespace: str = DEFAULT_WMI_NAMESPACE

    model_config = {"extra": "forbid"}

    def resolved_startup_folders(self) -> list[Path]:
        return self.startup_folders or default_startup_folders()

    def merged(self, **overrides: Any) -> "TriageConfig":
        """Copy with non-None overrides applied and validated."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        return TriageConfig(**{**self.model_dump(), **updates})


def load_config(path: Path | None) -> TriageConfig:
    """Load configuration from a YAML file.

    Args:
        path: YAML file, or None for defaults

    Returns:
        Validated TriageConfig

    Raises:
        ConfigError: If the file is unreadable or invalid
    """
    if path is None:
        return TriageConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(str(path), [str(e)])
    except yaml.YAMLError as e:
        raise ConfigError(str(path), [f"YAML parse error: {e}"])

    if not isinstance(data, dict):
        raise ConfigError(str(path), ["Top level must be a mapping"])

    try:
        return TriageConfig(**data)
    except PydanticValidationError as e:
        raise ConfigError(
            str(path),
            [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        )
