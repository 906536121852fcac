"""
Configuration loading for passport-strategies.

This module handles environment variable loading, provider configuration
files with ``env:`` references, flow settings and logging setup.

A provider configuration file looks like::

    {
      "providers": {
        "github": {
          "client_id": "env:GITHUB_CLIENT_ID",
          "client_secret": "env:GITHUB_CLIENT_SECRET",
          "redirect_url": "https://app.example.com/auth/github/callback",
          "failure_redirect": "https://app.example.com/login",
          "scopes": ["read:user", "user:email"]
        }
      },
      "settings": {"flow_ttl": 600}
    }
"""

import json
import logging
import os
from typing import Dict, Any, List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .flow_store import DEFAULT_FLOW_TTL, DEFAULT_MAX_PENDING_FLOWS

ENV_PREFIX = 'env:'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Config:
    """Provider and flow configuration."""

    def __init__(self, providers_config_path: Optional[str] = None, load_env: bool = True):
        """
        Load environment variables and provider configurations.

        Args:
            providers_config_path: Path to the providers JSON file, defaults to
                $PASSPORT_PROVIDERS_CONFIG or providers.json
            load_env: Whether to read a .env file first
        """
        if load_env:
            load_dotenv()

        self.providers_config_path = (
            providers_config_path
            or os.getenv('PASSPORT_PROVIDERS_CONFIG', 'providers.json')
        )

        self._load_provider_configurations()
        self._load_settings()

    def _load_provider_configurations(self) -> None:
        """Load provider configurations from JSON file with environment variable resolution."""
        try:
            with open(self.providers_config_path, 'r') as f:
                config_data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Provider configuration file not found: {self.providers_config_path}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in provider configuration file: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError("Provider configuration file must contain a JSON object")

        self.PROVIDER_CONFIGS = config_data.get('providers', {})
        self.PROVIDER_SETTINGS = config_data.get('settings', {})

        self.OAUTH_CONFIG = {}
        for provider_name, provider_config in self.PROVIDER_CONFIGS.items():
            if not provider_config.get('enabled', True):
                continue
            self.OAUTH_CONFIG[provider_name] = self._process_provider_config(provider_name, provider_config)

    def _process_provider_config(self, provider_name: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Resolve ``env:`` references in a provider configuration.

        Args:
            provider_name: Provider key, used in error messages
            config: Raw provider configuration dictionary

        Returns:
            Configuration with environment variables resolved

        Raises:
            ConfigurationError: If a referenced variable is not set
        """
        processed_config = {}

        for key, value in config.items():
            if isinstance(value, str) and value.startswith(ENV_PREFIX):
                env_var_name = value[len(ENV_PREFIX):]
                env_value = os.getenv(env_var_name)
                if env_value is None:
                    raise ConfigurationError(
                        f"Environment variable {env_var_name} not found for provider {provider_name}"
                    )
                processed_config[key] = env_value
            else:
                processed_config[key] = value

        return processed_config

    def _load_settings(self) -> None:
        """Load flow and logging settings; environment variables win over the file."""
        try:
            self.SETTINGS = {
                'flow_ttl': float(os.getenv('PASSPORT_FLOW_TTL',
                                            self.PROVIDER_SETTINGS.get('flow_ttl', DEFAULT_FLOW_TTL))),
                'max_pending_flows': int(os.getenv('PASSPORT_MAX_PENDING_FLOWS',
                                                   self.PROVIDER_SETTINGS.get('max_pending_flows',
                                                                              DEFAULT_MAX_PENDING_FLOWS))),
                'log_level': os.getenv('PASSPORT_LOG_LEVEL',
                                       self.PROVIDER_SETTINGS.get('log_level', 'INFO')).upper()
            }
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid flow settings: {e}")

        if self.SETTINGS['flow_ttl'] <= 0 or self.SETTINGS['max_pending_flows'] <= 0:
            raise ConfigurationError("flow_ttl and max_pending_flows must be positive")

    def get_strategy_config(self, provider: str) -> Dict[str, Any]:
        """
        Get the resolved configuration for a provider.

        Raises:
            ConfigurationError: If the provider is unknown or disabled
        """
        if provider not in self.PROVIDER_CONFIGS:
            raise ConfigurationError(f"Unsupported OAuth provider: {provider}")

        if not self.is_provider_enabled(provider):
            raise ConfigurationError(f"OAuth provider is disabled: {provider}")

        return self.OAUTH_CONFIG[provider].copy()

    def get_enabled_providers(self) -> List[str]:
        return [
            provider_name for provider_name, config in self.PROVIDER_CONFIGS.items()
            if config.get('enabled', True)
        ]

    def is_provider_enabled(self, provider: str) -> bool:
        if provider not in self.PROVIDER_CONFIGS:
            return False
        return self.PROVIDER_CONFIGS[provider].get('enabled', True)

    def get_settings(self) -> Dict[str, Any]:
        return self.SETTINGS.copy()


def configure_logging(level: str = 'INFO') -> None:
    """
    Configure root logging for applications embedding passport-strategies.

    Args:
        level: Log level name for the library loggers
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    debug = log_level <= logging.DEBUG
    logging.getLogger('authlib').setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger('requests').setLevel(logging.DEBUG if debug else logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
