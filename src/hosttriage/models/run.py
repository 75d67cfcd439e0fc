"""Run summary models for hosttriage."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ExportedFile(BaseModel):
    """A written export file with integrity metadata."""

    path: str
    format: str
    records: int = Field(..., ge=0)
    size_bytes: int = Field(..., ge=0)
    sha256: str = Field(..., pattern=r"^[a-f0-9]{64}$")


class ExportResult(BaseModel):
    """The CSV/JSON pair written for one record set."""

    output_dir: str
    records: int = Field(..., ge=0)
    files: list[ExportedFile]


class RunSummary(BaseModel):
    """Machine-readable summary printed on stdout after a run.

    Collector failures appear under ``collectors`` and as marker
    Findings in the exports; they never fail the run.
    """

    run_id: UUID = Field(..., description="Correlation ID for this run")
    command: str = Field(..., description="persistence or snapshot")
    hostname: str
    started_at: str = Field(..., description="ISO-8601 start time")
    completed_at: str = Field(..., description="ISO-8601 completion time")
    output_dir: str
    total_records: int = Field(default=0, ge=0)
    by_category: dict[str, int] = Field(default_factory=dict)
    collectors: list[dict[str, Any]] = Field(default_factory=list)
    exports: list[ExportResult] = Field(default_factory=list)
