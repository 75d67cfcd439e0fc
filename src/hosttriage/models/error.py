"""Structured error model for hosttriage."""

from typing import Any

from pydantic import BaseModel, Field


class StructuredError(BaseModel):
    """Structured error format.

    Fatal errors are printed in this shape on stdout; recoverable
    collector failures carry one in their CollectorOutcome so the run
    summary explains every marker Finding.
    """

    code: str = Field(
        ...,
        pattern=r"^[A-Z][A-Z0-9_]*$",
        description="Error code (e.g., SOURCE_UNAVAILABLE)",
        examples=[
            "OUTPUT_DIR_ERROR",
            "SOURCE_UNAVAILABLE",
            "ACCESS_DENIED",
            "NAMESPACE_UNAVAILABLE",
            "COLLECTOR_TIMEOUT",
        ],
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    remediation: str = Field(
        ...,
        description="Suggested fix or next step",
    )

    retryable: bool = Field(
        ...,
        description="Whether a later run may succeed",
    )

    context: dict[str, Any] | None = Field(
        default=None,
        description="Additional context (collector, path, etc.)",
    )

    model_config = {"extra": "forbid"}


class ErrorCode:
    """Standard error codes for hosttriage."""

    OUTPUT_DIR_ERROR = "OUTPUT_DIR_ERROR"
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    ACCESS_DENIED = "ACCESS_DENIED"
    NAMESPACE_UNAVAILABLE = "NAMESPACE_UNAVAILABLE"
    COLLECTOR_TIMEOUT = "COLLECTOR_TIMEOUT"
    COLLECTOR_FAILED = "COLLECTOR_FAILED"
    ACCUMULATOR_FROZEN = "ACCUMULATOR_FROZEN"
    CONFIG_ERROR = "CONFIG_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
