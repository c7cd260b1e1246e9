"""Simple YAML configuration loader for PrepBuddy."""

import copy
import json
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..exceptions import ApiKeyMissing

logger = logging.getLogger(__name__)

API_KEY_ENV_VARS = ("OPENAI_API_KEY", "AI_API_KEY")
API_KEY_FILENAME = "ipb-config.json"
MIN_API_KEY_LENGTH = 10

DEFAULT_CONFIG: Dict[str, Any] = {
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "model": "gpt-4o-mini",
        "transcription_model": "whisper-1",
        "request_timeout_seconds": 60.0,
    },
    "transcription": {
        "backend": "openai",
        "proxy_url": "http://localhost:3000",
        "min_batch_bytes": 16000,
        "max_attempts": 3,
        "retry_delay_seconds": 0.8,
    },
    "audio": {
        "sample_rate": 16000,
        "channels": 1,
        "frames_per_buffer": 1024,
        "chunk_interval_seconds": 1.5,
    },
    "storage": {
        "data_directory": "data",
    },
    "interview": {
        "questions_per_session": 3,
        "record_seconds": 30.0,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/prepbuddy.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class PrepBuddyConfig:
    """PrepBuddy configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are
                        used and relative paths resolve against the working directory.
        """
        if config_path is None:
            self.config_file = None
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            self._resolve_paths(self.config, Path.cwd())
            return

        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(DEFAULT_CONFIG, loaded)
        self._resolve_paths(config, self.config_file.parent)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any], base_dir: Path) -> None:
        """Resolve relative paths in configuration relative to base_dir."""
        data_dir = config['storage']['data_directory']
        if not os.path.isabs(data_dir):
            config['storage']['data_directory'] = str(base_dir / data_dir)

        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(base_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'transcription.max_attempts').

        Args:
            key_path: Dot-separated key path
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
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())

    def get_api_key_file(self) -> Path:
        return Path(self.get_data_directory()) / API_KEY_FILENAME

    def read_stored_api_key(self) -> Optional[str]:
        """Read the API key saved by save_api_key, if any."""
        key_file = self.get_api_key_file()
        if not key_file.exists():
            return None
        try:
            with open(key_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable API key file {key_file}: {e}")
            return None
        if not isinstance(data, dict):
            return None
        return data.get('apiKey') or None

    def has_api_key(self) -> bool:
        return any(os.environ.get(name) for name in API_KEY_ENV_VARS) or bool(self.read_stored_api_key())

    def get_api_key(self) -> str:
        """Get the OpenAI API key from the environment or the stored key file."""
        for name in API_KEY_ENV_VARS:
            value = os.environ.get(name)
            if value:
                return value

        stored = self.read_stored_api_key()
        if stored:
            return stored

        raise ApiKeyMissing(
            "OPENAI_API_KEY (or AI_API_KEY) is not set. "
            "Add it to your environment or save it with --save-api-key."
        )

    def save_api_key(self, api_key: str) -> str:
        """Persist an API key readable only by the current user.

        Returns:
            Path of the key file
        """
        api_key = (api_key or "").strip()
        if len(api_key) < MIN_API_KEY_LENGTH:
            raise ValueError("API key appears invalid.")

        key_file = self.get_api_key_file()
        key_file.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(key_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump({"apiKey": api_key}, f)
        os.chmod(key_file, 0o600)

        logger.info(f"API key saved to {key_file}")
        return str(key_file)
