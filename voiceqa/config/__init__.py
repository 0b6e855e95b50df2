"""Simple YAML configuration loader for VoiceQA."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

# Keys holding paths that are resolved relative to the config file
_PATH_KEYS = (
    "server.upload_directory",
    "logging.file_path",
    "google_cloud.credentials_path",
)

_DEFAULT_API_KEY_ENV = {
    "assemblyai": "ASSEMBLYAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class VoiceQAConfig:
    """VoiceQA configuration loader."""

    def __init__(self, config_path: str):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file.
        """
        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    @classmethod
    def from_dict(cls, config: Dict[str, Any], base_dir: Optional[str] = None) -> "VoiceQAConfig":
        """Build a configuration from an in-memory dictionary."""
        instance = cls.__new__(cls)
        instance.config_file = Path(base_dir or ".") / "voiceqa.yaml"
        instance.config = dict(config)
        instance._resolve_paths(instance.config)
        return instance

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for key_path in _PATH_KEYS:
            section, key = key_path.split('.')
            value = config.get(section, {}).get(key) if isinstance(config.get(section), dict) else None
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'gemini.model').

        Args:
            key_path: Dot-separated key path (e.g., 'transcription.max_retries')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'server.port')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_api_key(self, section: str) -> Optional[str]:
        """Get an API key from the config, falling back to an environment variable."""
        api_key = self.get(f"{section}.api_key")
        if api_key:
            return api_key

        env_name = self.get(f"{section}.api_key_env", _DEFAULT_API_KEY_ENV.get(section))
        if env_name:
            return os.environ.get(env_name)
        return None

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path - CRASHES if not found."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise ValueError("Google credentials path not configured in voiceqa.yaml")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_upload_directory(self) -> str:
        """Get directory where uploaded audio is stored."""
        upload_dir = self.get('server.upload_directory', 'audio')
        return str(Path(upload_dir).absolute())
