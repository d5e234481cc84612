"""Configuration management."""

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .models.config import AppConfig, EnvSettings


class ConfigError(Exception):
    """Configuration-related error."""

    pass


class ConfigManager:
    """Manages application configuration from .env and config.yaml."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Configuration directory path. Defaults to ~/.linkvault
        """
        if config_dir is None:
            env_config_dir = os.environ.get("LINKVAULT_CONFIG_DIR")
            if env_config_dir:
                config_dir = Path(env_config_dir)
            else:
                config_dir = Path.home() / '.linkvault'

        self.config_dir = config_dir
        self.config_file = config_dir / 'config.yaml'
        self.env_file = config_dir / '.env'

    def load_env_settings(self) -> EnvSettings:
        """Load environment settings from .env file.

        Returns:
            EnvSettings instance

        Raises:
            ConfigError: If .env file is missing or invalid
        """
        if not self.env_file.exists():
            raise ConfigError(
                f".env file not found at {self.env_file}. "
                f"Run 'linkvault init' to create configuration."
            )

        load_dotenv(self.env_file, override=True)

        try:
            return EnvSettings()
        except Exception as e:
            raise ConfigError(f"Invalid .env file: {e}") from e

    def load_app_config(self) -> AppConfig:
        """Load application configuration from config.yaml.

        Returns:
            AppConfig instance

        Raises:
            ConfigError: If config file is missing or invalid
        """
        if not self.config_file.exists():
            raise ConfigError(
                f"Config file not found at {self.config_file}. "
                f"Run 'linkvault init' to create configuration."
            )

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if data is None:
                data = {}

            config = AppConfig(**data)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}") from e
        except Exception as e:
            raise ConfigError(f"Failed to load config: {e}") from e

        self._check_backend(config)
        return config

    def save_app_config(self, config: AppConfig) -> None:
        """Save application configuration to config.yaml.

        Args:
            config: AppConfig instance to save

        Raises:
            ConfigError: If save fails
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            data = config.model_dump(mode='json')

            with open(self.config_file, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

        except Exception as e:
            raise ConfigError(f"Failed to save config: {e}") from e

    def create_env_file(
        self,
        api_token: str,
        ai_api_key: Optional[str] = None,
        service_anon_key: Optional[str] = None,
    ) -> None:
        """Create .env file with credentials.

        Args:
            api_token: Bearer token accepted by the local API
            ai_api_key: Chat-completion API key for tag suggestions
            service_anon_key: Public key of the hosted database service

        Raises:
            ConfigError: If file creation fails
        """
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)

            env_content = f"""# Local API auth (file backend). Replace with a random token.
API_TOKEN={api_token}

# Tag suggestions (optional)
AI_API_KEY={ai_api_key or 'your-ai-api-key-here'}
"""
            if service_anon_key:
                env_content += f"""
# Hosted database service (rest backend)
SERVICE_ANON_KEY={service_anon_key}
"""

            with open(self.env_file, 'w', encoding='utf-8') as f:
                f.write(env_content)

            # Set restrictive permissions on Unix-like systems
            if os.name != 'nt':
                os.chmod(self.env_file, 0o600)

        except Exception as e:
            raise ConfigError(f"Failed to create .env file: {e}") from e

    def validate_data_path(self, config: AppConfig) -> Path:
        """Validate the file backend's data directory is usable.

        Returns:
            Resolved data directory

        Raises:
            ConfigError: If the directory is missing or not accessible
        """
        if not config.data_path:
            raise ConfigError("data_path is not configured")

        path = Path(config.data_path)

        if not path.exists():
            raise ConfigError(f"Data path does not exist: {config.data_path}")

        if not path.is_dir():
            raise ConfigError(f"Data path is not a directory: {config.data_path}")

        if not os.access(path, os.R_OK):
            raise ConfigError(f"Data path is not readable: {config.data_path}")

        if not os.access(path, os.W_OK):
            raise ConfigError(f"Data path is not writable: {config.data_path}")

        return path

    def _check_backend(self, config: AppConfig) -> None:
        """Check the selected store backend has what it needs."""
        if config.store_backend == "file" and not config.data_path:
            raise ConfigError("store_backend=file requires data_path")

        if config.store_backend == "rest" and not config.service_url:
            raise ConfigError("store_backend=rest requires service_url")
