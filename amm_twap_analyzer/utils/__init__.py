"""
Utility modules for the AMM TWAP analyzer.
"""

from .error_handling import (
    DivisionByZeroError,
    ErrorCategory,
    ErrorSeverity,
    InsufficientDataError,
    InvalidInputError,
    InvalidTimeRangeError,
    MalformedNumericError,
    TwapAnalysisError,
)
from .structured_logging import LoggingManager, logging_manager
from .unicode_utils import UnicodeHandler

__all__ = [
    "DivisionByZeroError",
    "ErrorCategory",
    "ErrorSeverity",
    "InsufficientDataError",
    "InvalidInputError",
    "InvalidTimeRangeError",
    "MalformedNumericError",
    "TwapAnalysisError",
    "LoggingManager",
    "logging_manager",
    "UnicodeHandler",
]
