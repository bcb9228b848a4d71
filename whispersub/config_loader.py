"""Handles loading configuration from YAML files."""

import copy
import yaml
import os
import logging
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'models_dir': 'models',
    'temp_dir': 'temp',
    'output_dir': None,  # None -> write subtitles next to each input file
    'output_suffix': '.srt',
    'timing_log': 'timings.txt',
    'language': 'en',
    'device': 'cuda',
    'whisper_fp16': True,
    'window_seconds': 30.0,
    'sample_rate': 16000,
    'ffmpeg_path': None,
    'durable_writes': True,
    'download_timeout': 60,
    'log_dir': 'logs',
    'log_file': 'whispersub.log',
    'media_extensions': ['.wav', '.mp3', '.m4a', '.flac', '.ogg', '.opus',
                         '.mp4', '.mkv', '.mov', '.webm', '.avi'],
}

_POSITIVE_NUMBERS = ('window_seconds', 'sample_rate', 'download_timeout')


class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: str, required: bool = True) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Values from the file override DEFAULT_CONFIG.

        Args:
            config_path: The path to the YAML configuration file.
            required: When False, a missing file yields the defaults.

        Returns:
            A dictionary containing the loaded configuration settings.

        Raises:
            FileNotFoundError: If a required configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML, holds
                                invalid values, or cannot be read.
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            if not required:
                logger.warning(f"Configuration file {config_path} not found. Using defaults.")
                return config
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
            logger.error(f"Configuration path is not a file: {config_path}")
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if loaded is None:
            loaded = {}  # empty file
        if not isinstance(loaded, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")

        config.update(loaded)
        self.validate(config)
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    def validate(self, config: dict) -> None:
        """Raises ConfigurationError for values the pipeline cannot use."""
        for key in _POSITIVE_NUMBERS:
            value = config.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigurationError(f"'{key}' must be a positive number, got {value!r}.")
        if config.get('device') not in ('cuda', 'cpu'):
            raise ConfigurationError(f"Invalid device '{config.get('device')}'. Choose 'cuda' or 'cpu'.")
        if not isinstance(config.get('media_extensions'), list):
            raise ConfigurationError("'media_extensions' must be a list of file extensions.")
        for key in ('models_dir', 'temp_dir', 'timing_log'):
            if not config.get(key):
                raise ConfigurationError(f"Configuration missing '{key}'.")
