"""Simple YAML configuration loader for voicetui."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..exceptions import ConfigError
from ..models.audio import RecordingOptions
from ..models.transcription import TranscriptionConfig

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "channels": 1,
        "bit_depth": 16,
        "chunk_size": 1600,
        "max_duration_seconds": 60,
        "device": "default",
        "backend": "pyaudio",
    },
    "transcription": {
        "model": "small",
        "language": None,
        "task": "transcribe",
        "backend": "whisper_cpp",
        "whisper_binary": "whisper-cli",
        "timeout_seconds": 600,
    },
    "models": {
        "directory": "~/.voice-tui/models",
        "base_url": "https://huggingface.co/ggerganov/whisper.cpp/resolve/main",
    },
    "storage": {
        "export_directory": ".",
    },
    "logging": {
        "level": "INFO",
        "file_path": "~/.voice-tui/logs/voicetui.log",
        "console_output": False,
    },
}

# Keys holding filesystem paths, resolved relative to the config file
_PATH_KEYS = ("models.directory", "storage.export_directory", "logging.file_path")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class VoiceTuiConfig:
    """voicetui configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are used.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULTS)
            self._expand_paths(self.config)
            return

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
            raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level")

        config = _merge(DEFAULTS, loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _expand_paths(self, config: Dict[str, Any]) -> None:
        for key_path in _PATH_KEYS:
            section, key = key_path.split('.')
            value = config.get(section, {}).get(key)
            if value:
                config[section][key] = str(Path(value).expanduser())

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        self._expand_paths(config)
        config_dir = self.config_file.parent
        for key_path in _PATH_KEYS:
            section, key = key_path.split('.')
            value = config.get(section, {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'audio.sample_rate').

        Args:
            key_path: Dot-separated key path (e.g., 'transcription.model')
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
            key_path: Dot-separated path to config value (e.g., 'transcription.model')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_recording_options(self) -> RecordingOptions:
        """Build recording options from the audio section."""
        try:
            return RecordingOptions(
                sample_rate=int(self.get('audio.sample_rate')),
                channels=int(self.get('audio.channels')),
                bit_depth=int(self.get('audio.bit_depth')),
                max_duration_seconds=float(self.get('audio.max_duration_seconds')),
                device_id=str(self.get('audio.device')),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid audio configuration: {e}") from e

    def get_transcription_config(self) -> TranscriptionConfig:
        """Build the transcription config from the transcription section."""
        try:
            return TranscriptionConfig(
                model_name=str(self.get('transcription.model')),
                language_hint=self.get('transcription.language'),
                task=str(self.get('transcription.task')),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid transcription configuration: {e}") from e

    def get_models_directory(self) -> str:
        """Get model directory path."""
        return str(Path(self.get('models.directory')).absolute())

    def get_export_directory(self) -> str:
        return str(Path(self.get('storage.export_directory', '.')).absolute())
