"""Finding model: one normalized unit of persistence evidence."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FindingCategory(str, Enum):
    """Persistence indicator categories.

    Values are the literal strings written to exports and drive the
    alphabetical category ordering.
    """

    REGISTRY_RUN = "RegistryRun"
    STARTUP_FOLDER = "StartupFolder"
    SCHEDULED_TASK = "ScheduledTask"
    SERVICE = "Service"
    IFEO = "IFEO"
    WMI_EVENT_FILTER = "WMI_EventFilter"
    WMI_CONSUMER = "WMI_Consumer"
    WMI_BINDING = "WMI_Binding"
    WMI = "WMI"


# Column order shared by the CSV header and the JSON object keys
FINDING_FIELDS: tuple[str, ...] = (
    "Timestamp",
    "Category",
    "Location",
    "Name",
    "Value",
    "User",
    "Extra",
)

ERROR_MARKER = "ERROR"
INFO_MARKER = "INFO"


class Finding(BaseModel):
    """A normalized persistence finding.

    Immutable once created. Field names serialize under their
    capitalized aliases so exports match the published schema.
    """

    timestamp: str = Field(
        ...,
        alias="Timestamp",
        description="ISO-8601 capture time",
    )

    category: FindingCategory = Field(
        ...,
        alias="Category",
        description="Indicator category",
    )

    location: str = Field(
        ...,
        alias="Location",
        description="Registry key, folder, task path or namespace",
    )

    name: str = Field(
        ...,
        alias="Name",
        description="Entry name within Location",
    )

    value: str = Field(
        ...,
        alias="Value",
        description="Command line, file path or query text",
    )

    user: str = Field(
        default="",
        alias="User",
        description="Associated account, when the subsystem exposes one",
    )

    extra: str = Field(
        default="",
        alias="Extra",
        description="Auxiliary context (task state, service start mode)",
    )

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    @property
    def is_marker(self) -> bool:
        """True for ERROR/INFO markers rather than real entries."""
        return self.name in (ERROR_MARKER, INFO_MARKER)

    def sort_key(self) -> tuple[str, str, str]:
        """Key used for the deterministic export order."""
        return (self.category.value, self.location, self.name)

    def to_row(self) -> dict[str, Any]:
        """Convert to an export row keyed by FINDING_FIELDS."""
        return self.model_dump(mode="json", by_alias=True)
