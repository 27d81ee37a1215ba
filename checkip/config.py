"""
Configuration management for checkip.

Values such as API credentials are looked up in the environment first and
then in an optional YAML file (``~/.checkip.yaml`` or the file named by
CHECKIP_CONFIG). An unset key is not an error; an unreadable store is.
"""

import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = '/var/tmp'
DEFAULT_DATASET_MAX_AGE_HOURS = 24.0


class CheckConfig:
    """Configuration lookups shared by the agent and the checks."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Optional path to a YAML config file. Defaults to
                CHECKIP_CONFIG or ~/.checkip.yaml, resolved at lookup time.
        """
        self._config_file = config_file
        self._file_cache: Optional[Dict[str, Any]] = None
        self._file_cache_path: Optional[Path] = None

    def get_config_value(self, key: str) -> str:
        """
        Get a configuration value by key.

        Args:
            key: Configuration key, e.g. 'CENSYS_KEY'

        Returns:
            The value, or an empty string when the key is unset

        Raises:
            ConfigError: If the configuration file exists but cannot be read
        """
        value = os.getenv(key)
        if value:
            return value.strip()

        values = self._load_file()
        value = values.get(key)
        if value is None:
            logger.debug(f"Config key not set: {key}")
            return ''
        return str(value).strip()

    def config_file_path(self) -> Path:
        """Return the path of the YAML configuration file."""
        if self._config_file:
            return Path(self._config_file)
        env_path = os.getenv('CHECKIP_CONFIG')
        if env_path:
            return Path(env_path)
        return Path.home() / '.checkip.yaml'

    def _load_file(self) -> Dict[str, Any]:
        path = self.config_file_path()
        if self._file_cache is not None and self._file_cache_path == path:
            return self._file_cache

        if not path.exists():
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"reading config file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path}: expected a mapping of keys to values")

        self._file_cache = data
        self._file_cache_path = path
        return data

    def get_request_timeout(self, default: float = 10.0) -> float:
        """
        Get request timeout bounded to 1-30 seconds.

        Args:
            default: Default timeout value

        Returns:
            Bounded timeout value
        """
        try:
            timeout = float(os.getenv('CHECKIP_REQUEST_TIMEOUT', default))
            return max(1.0, min(30.0, timeout))
        except (ValueError, TypeError):
            return default

    def get_check_timeout(self, default: float = 120.0) -> float:
        """
        Get the time the agent waits for a single check to finish.

        Covers every request a check makes, including dataset downloads.
        """
        try:
            timeout = float(os.getenv('CHECKIP_CHECK_TIMEOUT', default))
        except (ValueError, TypeError):
            return default
        return timeout if timeout > 0 else default

    def get_cache_dir(self) -> Path:
        """Directory holding locally mirrored datasets."""
        return Path(os.getenv('CHECKIP_CACHE_DIR') or DEFAULT_CACHE_DIR)

    def get_dataset_max_age(self) -> float:
        """
        Freshness threshold for cached datasets.

        Returns:
            Maximum age in seconds
        """
        try:
            hours = float(os.getenv('CHECKIP_DATASET_MAX_AGE', DEFAULT_DATASET_MAX_AGE_HOURS))
        except (ValueError, TypeError):
            hours = DEFAULT_DATASET_MAX_AGE_HOURS
        if hours <= 0:
            hours = DEFAULT_DATASET_MAX_AGE_HOURS
        return hours * 3600

    def is_debug_mode(self) -> bool:
        """
        Check if debug mode is enabled.

        Returns:
            True if debug mode is enabled
        """
        debug_value = os.getenv('CHECKIP_DEBUG', 'false').lower()
        return debug_value in ('true', '1', 'yes', 'on')

    def get_debug_level(self) -> str:
        """
        Get debug level for controlling verbosity.

        Returns:
            Debug level: 'off', 'basic', 'detailed', or 'verbose'
        """
        if not self.is_debug_mode():
            return 'off'

        level = os.getenv('CHECKIP_DEBUG_LEVEL', 'basic').lower()
        if level in ('basic', 'detailed', 'verbose'):
            return level
        return 'basic'

# Global configuration instance
config = CheckConfig()
