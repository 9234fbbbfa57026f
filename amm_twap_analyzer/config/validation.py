"""
Configuration validation using Pydantic.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class LogLevelEnum(str, Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class OutputFormatEnum(str, Enum):
    """Supported report formats."""
    TEXT = "text"
    JSON = "json"


class LoggingConfigValidator(BaseModel):
    """Pydantic model for logging configuration validation."""
    model_config = {"extra": "forbid", "use_enum_values": True, "validate_default": True}

    level: LogLevelEnum = Field(default=LogLevelEnum.WARNING, description="Root log level")
    file: Optional[str] = Field(default=None, description="Optional log file path")
    structured: bool = Field(default=False, description="Emit JSON log lines")
    max_file_size: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        le=1024 * 1024 * 1024,
        description="Log file size before rotation, in bytes"
    )
    backup_count: int = Field(default=5, ge=0, le=100, description="Rotated log files to keep")

    @field_validator('level', mode='before')
    @classmethod
    def normalize_level(cls, v):
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator('file')
    @classmethod
    def validate_file(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Log file path cannot be empty")
        return v


class OutputConfigValidator(BaseModel):
    """Pydantic model for output configuration validation."""
    model_config = {"extra": "forbid", "use_enum_values": True, "validate_default": True}

    format: OutputFormatEnum = Field(default=OutputFormatEnum.TEXT, description="Report format")
    price_precision: int = Field(default=8, ge=0, le=18, description="Decimal places for prices")
    tick_precision: int = Field(default=6, ge=0, le=12, description="Decimal places for ticks")
    show_pool_info: bool = Field(default=True, description="Print pool details before results")

    @field_validator('format', mode='before')
    @classmethod
    def normalize_format(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v


class InputConfigValidator(BaseModel):
    """Pydantic model for default input files."""
    model_config = {"extra": "forbid"}

    pool_file: Optional[str] = Field(default=None, description="Default PoolState JSON file")
    obs_file: Optional[str] = Field(default=None, description="Default ObservationState JSON file")

    @field_validator('pool_file', 'obs_file')
    @classmethod
    def validate_json_path(cls, v):
        """Validate input file path format."""
        if v is None:
            return v
        if not v.strip():
            raise ValueError("Input file path cannot be empty")
        if not v.endswith('.json'):
            raise ValueError(f"Input file must be a JSON file: {v}")
        return v

    @model_validator(mode='after')
    def validate_pair(self):
        """Pool and observation defaults only make sense together."""
        if bool(self.pool_file) != bool(self.obs_file):
            raise ValueError("Default pool_file and obs_file must be configured together")
        return self


class AnalyzerConfigValidator(BaseModel):
    """Main configuration validator using Pydantic."""
    logging: LoggingConfigValidator = Field(default_factory=LoggingConfigValidator)
    output: OutputConfigValidator = Field(default_factory=OutputConfigValidator)
    input: InputConfigValidator = Field(default_factory=InputConfigValidator)

    model_config = {
        "validate_assignment": True,
        "extra": "forbid",  # Prevent extra fields
        "use_enum_values": True
    }

    def to_legacy_config(self) -> 'AnalyzerConfig':
        """Convert to the dataclass configuration used by the rest of the package."""
        from amm_twap_analyzer.config.models import (
            AnalyzerConfig, InputConfig, LoggingConfig, OutputConfig
        )

        return AnalyzerConfig(
            logging=LoggingConfig(
                level=self.logging.level,
                file=self.logging.file,
                structured=self.logging.structured,
                max_file_size=self.logging.max_file_size,
                backup_count=self.logging.backup_count
            ),
            output=OutputConfig(
                format=self.output.format,
                price_precision=self.output.price_precision,
                tick_precision=self.output.tick_precision,
                show_pool_info=self.output.show_pool_info
            ),
            input=InputConfig(
                pool_file=self.input.pool_file,
                obs_file=self.input.obs_file
            )
        )


def validate_config_dict(config_data: Dict[str, Any]) -> AnalyzerConfigValidator:
    """
    Validate configuration dictionary using Pydantic.

    Raises:
        ValueError: If validation fails
    """
    try:
        return AnalyzerConfigValidator(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")


def get_env_var_mappings() -> Dict[str, str]:
    """
    Get mapping of environment variables to configuration paths.

    Returns:
        Dictionary mapping environment variable names to config paths
    """
    return {
        # Logging configuration
        'TWAP_LOG_LEVEL': 'logging.level',
        'TWAP_LOG_FILE': 'logging.file',
        'TWAP_LOG_STRUCTURED': 'logging.structured',
        'TWAP_LOG_MAX_FILE_SIZE': 'logging.max_file_size',
        'TWAP_LOG_BACKUP_COUNT': 'logging.backup_count',

        # Output configuration
        'TWAP_OUTPUT_FORMAT': 'output.format',
        'TWAP_PRICE_PRECISION': 'output.price_precision',
        'TWAP_TICK_PRECISION': 'output.tick_precision',
        'TWAP_SHOW_POOL_INFO': 'output.show_pool_info',

        # Input configuration
        'TWAP_POOL_FILE': 'input.pool_file',
        'TWAP_OBS_FILE': 'input.obs_file',
    }
