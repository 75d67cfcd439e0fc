"""Pydantic models for hosttriage."""

from hosttriage.models.error import ErrorCode, StructuredError
from hosttriage.models.finding import FINDING_FIELDS, Finding, FindingCategory
from hosttriage.models.host import CONNECTION_FIELDS, PROCESS_FIELDS, ConnectionRecord, ProcessRecord
from hosttriage.models.run import ExportedFile, ExportResult, RunSummary

__all__ = [
    "ErrorCode",
    "StructuredError",
    "FINDING_FIELDS",
    "Finding",
    "FindingCategory",
    "CONNECTION_FIELDS",
    "PROCESS_FIELDS",
    "ConnectionRecord",
    "ProcessRecord",
    "ExportedFile",
    "ExportResult",
    "RunSummary",
]
