"""
load the config from config.yaml and .env
"""

import os
import yaml
from dotenv import load_dotenv
from pathlib import Path
from typing import Dict, Any


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    # Environment variable -> nested config location
    ENV_MAPPINGS = {
        'BROWSER_USER_AGENT': ('fetcher', 'user_agent'),
        'BROWSER_TIMEOUT': ('fetcher', 'timeout'),
        'BROWSER_VERIFY_TLS': ('fetcher', 'verify_tls'),
        'BROWSER_MAX_REDIRECTS': ('fetcher', 'max_redirects'),
        'BROWSER_DEFAULT_URL': ('cli', 'default_url'),
        'BROWSER_POLL_COUNT': ('cli', 'poll_count'),
        'BROWSER_POLL_INTERVAL': ('cli', 'poll_interval'),
        'LOG_LEVEL': ('logging', 'level'),
        'LOG_FORMAT': ('logging', 'format'),
    }

    def __init__(self, config_path: str = None, environ: Dict[str, str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, looks for config.yaml
                        in the same directory as this module.
            environ: Mapping consulted for overrides. If None, os.environ is used
                    after loading a .env file from the working directory.
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"
        if environ is None:
            load_dotenv()
            environ = os.environ

        self.config_path = Path(config_path)
        self._environ = environ
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = self._environ.get(env_var)
            if env_value is None:
                continue

            current = config
            for key in config_path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        if value.lower() in ('null', 'none'):
            return None

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value using dot notation.

        Args:
            *keys: Configuration keys (e.g., 'fetcher', 'timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def fetcher(self) -> Dict[str, Any]:
        """Get request engine configuration."""
        return self.get('fetcher', default={})

    @property
    def cli(self) -> Dict[str, Any]:
        """Get polling CLI configuration."""
        return self.get('cli', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})


# Global configuration instance
config = Config()
