"""Error classification utilities for task and calendar operations."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class ErrorCategory(Enum):
    """Categories of errors that can occur while managing maintenance tasks."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    INVALID_RECURRENCE = "invalid_recurrence"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    MUTATION_IN_PROGRESS = "mutation_in_progress"
    NETWORK_ERROR = "network_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Record errors
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_EQUIPMENT_NOT_FOUND = "ERR_EQUIPMENT_NOT_FOUND"
    ERR_AQUARIUM_NOT_FOUND = "ERR_AQUARIUM_NOT_FOUND"

    # Task errors
    ERR_INVALID_RECURRENCE = "ERR_INVALID_RECURRENCE"
    ERR_INVALID_STATE_TRANSITION = "ERR_INVALID_STATE_TRANSITION"
    ERR_MUTATION_IN_PROGRESS = "ERR_MUTATION_IN_PROGRESS"

    # Permission errors
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"

    # Remote errors
    ERR_NETWORK_ERROR = "ERR_NETWORK_ERROR"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity


_ERROR_PATTERNS: dict[
    Literal["network", "not_found"],
    dict[str, list[str] | set[str]],
] = {
    "network": {
        "phrases": [
            "connection",
            "timeout",
            "network",
            "503",
            "502",
            "504",
            "unreachable",
            "database is locked",
        ],
        "exception_types": {"ConnectionError", "TimeoutError", "DatabaseError"},
    },
    "not_found": {
        "phrases": ["not found", "does not exist"],
        "exception_types": {"KeyError", "RecordNotFoundError"},
    },
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["network", "not_found"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def _not_found_code(error_str: str) -> str:
    if "equipment" in error_str:
        return ErrorCode.ERR_EQUIPMENT_NOT_FOUND
    if "aquarium" in error_str:
        return ErrorCode.ERR_AQUARIUM_NOT_FOUND
    return ErrorCode.ERR_TASK_NOT_FOUND


def classify_error(exception: Exception) -> ErrorCategory:
    """Classify an exception into an ErrorCategory."""
    return _CODE_TO_CATEGORY[classify_error_with_response(exception).code]


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Ownership and not-found errors are terminal for the operation; network errors
    are reported but never retried automatically.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__

    if exception_type == "MutationInProgressError":
        return ErrorResponse(
            code=ErrorCode.ERR_MUTATION_IN_PROGRESS,
            message="This task is already being updated.",
            suggestion="Wait for the current change to finish, then try again.",
            severity=ErrorSeverity.LOW,
        )

    if exception_type == "PermissionError" or "access denied" in error_str or "does not belong to" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_PERMISSION_DENIED,
            message="You don't have access to this item.",
            suggestion="Make sure the aquarium belongs to your account.",
            severity=ErrorSeverity.MEDIUM,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="not_found"):
        return ErrorResponse(
            code=_not_found_code(error_str),
            message="I couldn't find that item. It may have been deleted.",
            suggestion="Refresh the calendar to see the current tasks.",
            severity=ErrorSeverity.LOW,
        )

    if "recurrence" in error_str:
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_RECURRENCE,
            message="Invalid recurrence settings.",
            suggestion="Choose daily, weekly, biweekly, monthly, or custom with a positive number of days.",
            severity=ErrorSeverity.LOW,
        )

    if exception_type == "ValueError" and ("cannot" in error_str or "invalid state" in error_str):
        return ErrorResponse(
            code=ErrorCode.ERR_INVALID_STATE_TRANSITION,
            message="This action cannot be performed in the task's current state.",
            suggestion="Refresh the calendar and try again.",
            severity=ErrorSeverity.LOW,
        )

    if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type="network"):
        return ErrorResponse(
            code=ErrorCode.ERR_NETWORK_ERROR,
            message="The change could not be saved.",
            suggestion="Please check your connection and try again.",
            severity=ErrorSeverity.MEDIUM,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )


_CODE_TO_CATEGORY: dict[str, ErrorCategory] = {
    ErrorCode.ERR_TASK_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.ERR_EQUIPMENT_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.ERR_AQUARIUM_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.ERR_PERMISSION_DENIED: ErrorCategory.PERMISSION_DENIED,
    ErrorCode.ERR_INVALID_RECURRENCE: ErrorCategory.INVALID_RECURRENCE,
    ErrorCode.ERR_INVALID_STATE_TRANSITION: ErrorCategory.INVALID_STATE_TRANSITION,
    ErrorCode.ERR_MUTATION_IN_PROGRESS: ErrorCategory.MUTATION_IN_PROGRESS,
    ErrorCode.ERR_NETWORK_ERROR: ErrorCategory.NETWORK_ERROR,
    ErrorCode.ERR_UNKNOWN: ErrorCategory.UNKNOWN,
}
