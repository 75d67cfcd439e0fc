"""Structured error handling for hosttriage."""

import sys
from typing import Any, NoReturn

from hosttriage.models.error import ErrorCode, StructuredError

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_INVALID_ARGS = 2
EXIT_OUTPUT_DIR = 3


class HostTriageError(Exception):
    """Base exception for hosttriage errors.

    Wraps a StructuredError for consistent error handling.
    """

    def __init__(
        self,
        code: str,
        message: str,
        remediation: str,
        retryable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        self.error = StructuredError(
            code=code,
            message=message,
            remediation=remediation,
            retryable=retryable,
            context=context,
        )
        super().__init__(message)

    def to_structured(self) -> StructuredError:
        """Convert to StructuredError."""
        return self.error

    def to_structured_error(self) -> dict:
        """Convert to JSON-serializable dict for output."""
        return self.error.model_dump(mode="json", exclude_none=True)


class OutputDirectoryError(HostTriageError):
    """The run's output directory could not be created."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code=ErrorCode.OUTPUT_DIR_ERROR,
            message=f"Cannot create output directory {path}: {reason}",
            remediation="Pass a writable location with --output-dir",
            retryable=False,
            context={"path": path},
        )


class SourceUnavailableError(HostTriageError):
    """A whole OS subsystem could not be queried."""

    def __init__(self, source: str, reason: str):
        super().__init__(
            code=ErrorCode.SOURCE_UNAVAILABLE,
            message=f"{source} unavailable: {reason}",
            remediation="Check that the service is running and the collector runs on Windows",
            retryable=True,
            context={"source": source},
        )


class SourceAccessError(HostTriageError):
    """Access to a specific location was denied."""

    def __init__(self, location: str, reason: str = "access denied"):
        super().__init__(
            code=ErrorCode.ACCESS_DENIED,
            message=f"{location}: {reason}",
            remediation="Re-run from an elevated prompt for full coverage",
            retryable=True,
            context={"location": location},
        )


class NamespaceUnavailableError(HostTriageError):
    """A management-instrumentation namespace could not be opened."""

    def __init__(self, namespace: str, reason: str):
        super().__init__(
            code=ErrorCode.NAMESPACE_UNAVAILABLE,
            message=f"Namespace {namespace} not accessible: {reason}",
            remediation="Re-run from an elevated prompt to read event subscriptions",
            retryable=True,
            context={"namespace": namespace},
        )


class CollectorTimeoutError(HostTriageError):
    """A collector did not finish within its time budget."""

    def __init__(self, collector: str, timeout: float):
        super().__init__(
            code=ErrorCode.COLLECTOR_TIMEOUT,
            message=f"Collector '{collector}' timed out after {timeout:g} seconds",
            remediation="Raise --timeout or investigate the hung subsystem",
            retryable=True,
            context={"collector": collector, "timeout_seconds": timeout},
        )


class AccumulatorFrozenError(HostTriageError):
    """Findings were appended after export began."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ACCUMULATOR_FROZEN,
            message="Cannot append findings after the accumulator was frozen",
            remediation="Append all findings before exporting",
            retryable=False,
        )


class ConfigError(HostTriageError):
    """Configuration file could not be loaded or validated."""

    def __init__(self, path: str, errors: list[str]):
        super().__init__(
            code=ErrorCode.CONFIG_ERROR,
            message=f"Configuration '{path}' is invalid",
            remediation="Fix the listed errors and try again",
            retryable=False,
            context={"path": path, "errors": errors},
        )


def collector_failure(collector: str, exc: Exception) -> StructuredError:
    """Describe an exception raised inside a collector.

    HostTriageError instances keep their own code; anything else is
    reported as COLLECTOR_FAILED with the exception type attached.
    """
    if isinstance(exc, HostTriageError):
        return exc.to_structured()
    return StructuredError(
        code=ErrorCode.COLLECTOR_FAILED,
        message=str(exc) or type(exc).__name__,
        remediation="Inspect the collector's subsystem on the host",
        retryable=False,
        context={"collector": collector, "type": type(exc).__name__},
    )


def handle_error(error: HostTriageError | Exception, exit_code: int = 1) -> NoReturn:
    """Handle an error by outputting it and exiting.

    Args:
        error: The error to handle
        exit_code: Exit code to use
    """
    from hosttriage.cli.output import output_error

    if isinstance(error, HostTriageError):
        output_error(error.to_structured())
    else:
        structured = StructuredError(
            code=ErrorCode.INTERNAL_ERROR,
            message=str(error),
            remediation="This is an unexpected error. Please report it.",
            retryable=False,
            context={"type": type(error).__name__},
        )
        output_error(structured)

    sys.exit(exit_code)
