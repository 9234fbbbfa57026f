"""
Error taxonomy for TWAP computation and manipulation scoring.

Every failure raised by the analyzer derives from TwapAnalysisError and carries
a category and severity so callers can report failures uniformly. The core
computations fail fast: there is no retry and no partial result.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors that can occur during an analysis run."""
    INSUFFICIENT_DATA = "insufficient_data"
    INVALID_TIME_RANGE = "invalid_time_range"
    ARITHMETIC = "arithmetic"
    DATA_VALIDATION = "data_validation"
    INPUT = "input"
    CONFIGURATION = "configuration"


class TwapAnalysisError(Exception):
    """Base class for all analyzer failures."""

    category: ErrorCategory = ErrorCategory.DATA_VALIDATION
    severity: ErrorSeverity = ErrorSeverity.HIGH

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serializable representation for JSON error output."""
        return {
            "error": type(self).__name__,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "details": self.details,
        }


class InsufficientDataError(TwapAnalysisError):
    """Fewer than two valid observations were supplied."""
    category = ErrorCategory.INSUFFICIENT_DATA
    severity = ErrorSeverity.MEDIUM


class InvalidTimeRangeError(TwapAnalysisError):
    """Oldest and newest valid observations do not span a positive interval."""
    category = ErrorCategory.INVALID_TIME_RANGE


class DivisionByZeroError(TwapAnalysisError):
    """The current price evaluated to zero, so the percent difference is undefined."""
    category = ErrorCategory.ARITHMETIC


class MalformedNumericError(TwapAnalysisError):
    """A tick, timestamp or decimals value is not a valid integer."""
    category = ErrorCategory.DATA_VALIDATION


class InvalidInputError(TwapAnalysisError):
    """Raw pool or observation data is missing fields or has the wrong shape."""
    category = ErrorCategory.INPUT
    severity = ErrorSeverity.MEDIUM


class ConfigurationError(TwapAnalysisError):
    """The analyzer configuration file or environment overrides are invalid."""
    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.MEDIUM


def describe_error(error: Exception) -> Dict[str, Any]:
    """
    Build a uniform description of an error for logging and CLI output.

    Errors outside the analyzer taxonomy are reported as critical with an
    unknown category.
    """
    if isinstance(error, TwapAnalysisError):
        return error.to_dict()

    return {
        "error": type(error).__name__,
        "category": "unknown",
        "severity": ErrorSeverity.CRITICAL.value,
        "message": str(error),
        "details": {},
    }


def log_error(error: Exception, operation: str, level: Optional[int] = None) -> None:
    """
    Log an error with its classification attached as extra fields.

    Without an explicit ``level``, low and medium severity errors log as
    warnings and everything else as errors.
    """
    description = describe_error(error)
    if level is None:
        level = logging.ERROR
        if description["severity"] in (ErrorSeverity.LOW.value, ErrorSeverity.MEDIUM.value):
            level = logging.WARNING

    logger.log(
        level,
        f"{operation} failed: {description['message']}",
        extra={
            "operation": operation,
            "error_type": description["error"],
            "error_category": description["category"],
            "error_severity": description["severity"],
        },
    )
