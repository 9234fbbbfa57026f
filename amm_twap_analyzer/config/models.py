"""
Configuration data models.

Only the tool around the analysis is configurable. Manipulation thresholds
are fixed constants of the detector.
"""

from dataclasses import dataclass, field
from typing import List, Optional

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
OUTPUT_FORMATS = ["text", "json"]


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "WARNING"
    file: Optional[str] = None
    structured: bool = False
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5


@dataclass
class OutputConfig:
    """Report rendering configuration."""
    format: str = "text"
    price_precision: int = 8
    tick_precision: int = 6
    show_pool_info: bool = True


@dataclass
class InputConfig:
    """Default input files used when none are given on the command line."""
    pool_file: Optional[str] = None
    obs_file: Optional[str] = None


@dataclass
class AnalyzerConfig:
    """Main configuration container."""
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    input: InputConfig = field(default_factory=InputConfig)

    def validate(self) -> List[str]:
        """
        Validate configuration settings.

        Returns:
            List of validation errors, empty if valid
        """
        errors = []

        if self.logging.level.upper() not in LOG_LEVELS:
            errors.append(f"Invalid log level '{self.logging.level}', expected one of: {LOG_LEVELS}")

        if self.logging.max_file_size <= 0:
            errors.append("Log file size limit must be positive")

        if self.logging.backup_count < 0:
            errors.append("Log backup count must be non-negative")

        if self.output.format not in OUTPUT_FORMATS:
            errors.append(f"Invalid output format '{self.output.format}', expected one of: {OUTPUT_FORMATS}")

        if self.output.price_precision < 0 or self.output.tick_precision < 0:
            errors.append("Display precision must be non-negative")

        if bool(self.input.pool_file) != bool(self.input.obs_file):
            errors.append("Default pool_file and obs_file must be configured together")

        return errors
