"""
Configuration manager for the TWAP analyzer.
"""

import hashlib
import json
import logging
import os
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

import yaml

from amm_twap_analyzer.config.models import AnalyzerConfig
from amm_twap_analyzer.config.validation import (
    AnalyzerConfigValidator, get_env_var_mappings, validate_config_dict
)
from amm_twap_analyzer.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "twap_config.yaml"

_INT_ENV_VARS = [
    'TWAP_LOG_MAX_FILE_SIZE', 'TWAP_LOG_BACKUP_COUNT',
    'TWAP_PRICE_PRECISION', 'TWAP_TICK_PRECISION',
]

_BOOL_ENV_VARS = ['TWAP_LOG_STRUCTURED', 'TWAP_SHOW_POOL_INFO']


class ConfigManager:
    """
    Configuration manager.

    Supports YAML and JSON configuration files with environment variable
    overrides. A missing configuration file is not an error: defaults are
    used and ``write_default_config`` can create one on request.
    """

    def __init__(self, config_file_path: str = DEFAULT_CONFIG_FILE):
        """
        Initialize configuration manager.

        Args:
            config_file_path: Path to the configuration file
        """
        self.config_file_path = os.path.abspath(config_file_path)
        self._config: Optional[AnalyzerConfig] = None
        self._config_hash: Optional[str] = None

    @property
    def config_exists(self) -> bool:
        return os.path.exists(self.config_file_path)

    def load_config(self) -> AnalyzerConfig:
        """
        Load configuration from file with environment variable overrides.

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationError: If the file cannot be parsed or is invalid
        """
        current_hash = self._calculate_config_hash()
        if self._config_hash == current_hash and self._config is not None:
            return self._config

        try:
            if self.config_exists:
                config_data = self._load_config_file()
            else:
                logger.debug(f"No configuration file at {self.config_file_path}, using defaults")
                config_data = {}

            config_data = self._apply_env_overrides(config_data)
            validated_config = validate_config_dict(config_data)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details={"config_file": self.config_file_path}
            ) from e

        self._config = validated_config.to_legacy_config()
        self._config_hash = current_hash

        return self._config

    def validate_config_file(self) -> Tuple[bool, List[str]]:
        """
        Validate the configuration file, with environment overrides, without
        replacing the loaded configuration.

        Returns:
            Tuple of (is_valid, error_messages)
        """
        if not self.config_exists:
            return False, ["Configuration file does not exist"]

        try:
            config_data = self._load_config_file()
            config_data = self._apply_env_overrides(config_data)
            validated = validate_config_dict(config_data)
        except (OSError, ValueError, yaml.YAMLError) as e:
            return False, [str(e)]

        errors = validated.to_legacy_config().validate()
        return len(errors) == 0, errors

    def write_default_config(self, force: bool = False) -> str:
        """
        Write a configuration file holding the default settings.

        Args:
            force: Overwrite an existing file

        Returns:
            Path of the written file

        Raises:
            ConfigurationError: If the file exists and ``force`` is not set
        """
        if self.config_exists and not force:
            raise ConfigurationError(
                f"Configuration file already exists: {self.config_file_path}",
                details={"config_file": self.config_file_path}
            )

        default_config = AnalyzerConfigValidator().model_dump(mode='json')

        directory = os.path.dirname(self.config_file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(self.config_file_path, 'w') as f:
            if self._is_json_path():
                json.dump(default_config, f, indent=2)
            else:
                yaml.dump(default_config, f, default_flow_style=False, indent=2)

        logger.info(f"Wrote default configuration to {self.config_file_path}")
        self._config = None
        self._config_hash = None
        return self.config_file_path

    def _is_json_path(self) -> bool:
        return self.config_file_path.endswith('.json')

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration data from file."""
        with open(self.config_file_path, 'r') as f:
            if self.config_file_path.endswith('.yaml') or self.config_file_path.endswith('.yml'):
                data = yaml.safe_load(f) or {}
            elif self._is_json_path():
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {self.config_file_path}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_file_path}")
        return data

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = get_env_var_mappings()

        for env_var, config_path_str in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                # "output.format" -> ["output", "format"]
                config_path = config_path_str.split('.')

                current = config_data
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                current[config_path[-1]] = self._convert_env_value(env_var, env_value)
                logger.debug(f"Applied environment override {env_var} -> {config_path_str}")

        return config_data

    def _convert_env_value(self, env_var: str, env_value: str) -> Any:
        """Convert environment variable value to appropriate type."""
        if env_var in _INT_ENV_VARS:
            try:
                return int(env_value)
            except ValueError:
                raise ValueError(f"{env_var} must be an integer, got '{env_value}'")

        elif env_var in _BOOL_ENV_VARS:
            return env_value.lower() in ('true', '1', 'yes', 'on')

        else:
            return env_value

    def _calculate_config_hash(self) -> str:
        """Calculate hash of configuration file content and overrides."""
        content = b""
        if self.config_exists:
            try:
                with open(self.config_file_path, 'rb') as f:
                    content = f.read()
            except OSError:
                return ""

        env_vars = []
        for env_var in get_env_var_mappings().keys():
            env_value = os.getenv(env_var)
            if env_value is not None:
                env_vars.append(f"{env_var}={env_value}")

        combined_content = content + "|".join(sorted(env_vars)).encode()

        return hashlib.sha256(combined_content).hexdigest()


def config_to_dict(config: AnalyzerConfig) -> Dict[str, Any]:
    """Plain dictionary view of a configuration, for display."""
    return asdict(config)
