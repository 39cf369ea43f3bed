"""Error classification utilities for generation run failures."""

from enum import StrEnum
from typing import Literal

from src.core.config import constants


class ErrorCategory(StrEnum):
    """Stage of a generation run at which a failure was caught."""

    TEMPLATE_LOAD = "template_load"
    TEMPLATE_INVALID = "template_invalid"
    SITE_RESOLUTION = "site_resolution"
    INSTANTIATION = "instantiation"
    TRIGGERED_SCAN = "triggered_scan"
    TRIGGERED_ASSET = "triggered_asset"
    SWEEP = "sweep"


class ErrorCause(StrEnum):
    """Likely cause of a store failure, for triage."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    CONSTRAINT = "constraint"
    SCHEMA = "schema"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


_ERROR_PATTERNS: dict[
    Literal["timeout", "network", "constraint", "schema", "validation"],
    dict[str, list[str] | set[str]],
] = {
    "timeout": {
        "phrases": ["timed out", "timeout", "database is locked"],
        "exception_types": {"TimeoutError", "DatabaseTimeoutError"},
    },
    "network": {
        "phrases": ["connection", "unreachable", "503", "502", "504"],
        "exception_types": {"ConnectionError"},
    },
    "constraint": {
        "phrases": ["unique constraint", "foreign key constraint", "check constraint", "not null constraint"],
        "exception_types": {"IntegrityError"},
    },
    "schema": {
        "phrases": ["no such table", "no such column", "does not exist"],
        "exception_types": set(),
    },
    "validation": {
        "phrases": ["validation error"],
        "exception_types": {"ValidationError"},
    },
}


def _match_error_pattern(
    *,
    error_str: str,
    exception_type: str,
    pattern_type: Literal["timeout", "network", "constraint", "schema", "validation"],
) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_store_error(exception: BaseException) -> ErrorCause:
    """Classify a store failure by inspecting its type and message.

    The exception chain is walked so that wrapped driver errors (an
    ``IntegrityError`` re-raised as ``DatabaseError``) are still recognised.
    """
    current: BaseException | None = exception
    while current is not None:
        error_str = str(current).lower()
        exception_type = type(current).__name__
        for pattern_type in ("timeout", "network", "constraint", "schema", "validation"):
            if _match_error_pattern(error_str=error_str, exception_type=exception_type, pattern_type=pattern_type):
                return ErrorCause(pattern_type)
        current = current.__cause__
    return ErrorCause.UNKNOWN


def format_run_error(category: ErrorCategory, exception: BaseException, **context: object) -> str:
    """Build the human-readable run log entry for a caught failure.

    Example:
        ``instantiation [template=12 site=3] (timeout): create_records on task_instances timed out``
    """
    tags = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
    detail = str(exception) or type(exception).__name__
    detail = detail[: constants.MAX_ERROR_DETAIL_LENGTH]
    cause = classify_store_error(exception)
    prefix = f"{category} [{tags}]" if tags else str(category)
    return f"{prefix} ({cause}): {detail}"
