"""
Configuration management for the TWAP analyzer.
"""

from .models import (
    AnalyzerConfig,
    InputConfig,
    LoggingConfig,
    OutputConfig
)
from .manager import DEFAULT_CONFIG_FILE, ConfigManager, config_to_dict
from .validation import (
    AnalyzerConfigValidator,
    validate_config_dict,
    get_env_var_mappings,
    LogLevelEnum,
    OutputFormatEnum
)

__all__ = [
    # Models
    'AnalyzerConfig',
    'InputConfig',
    'LoggingConfig',
    'OutputConfig',

    # Manager
    'DEFAULT_CONFIG_FILE',
    'ConfigManager',
    'config_to_dict',

    # Validation
    'AnalyzerConfigValidator',
    'validate_config_dict',
    'get_env_var_mappings',
    'LogLevelEnum',
    'OutputFormatEnum',
]
