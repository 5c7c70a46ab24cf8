"""Configuration management for MTG Commander Analyzer."""

import json
import logging
import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, asdict, fields


logger = logging.getLogger(__name__)


@dataclass
class AnalyzerConfig:
    """Configuration settings for analysis and deck building."""

    # Reference data
    oracle_cards_path: Optional[str] = None
    data_dir: Optional[str] = None
    default_template_id: str = "bracket3"
    default_bracket_id: str = "bracket3"

    # EDHREC settings
    edhrec_cache_enabled: bool = True
    edhrec_cache_duration_hours: int = 24
    suggestion_limit: int = 50
    api_timeout_seconds: int = 30

    # Output preferences
    verbose_output: bool = False


class ConfigManager:
    """Manages application configuration with file persistence."""

    DEFAULT_CONFIG_DIR = Path.home() / ".mtg_commander_analyzer"
    DEFAULT_CONFIG_FILE = "config.json"
    ORACLE_CARDS_FILE = "oracle-cards.json"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_dir: Custom configuration directory (defaults to ~/.mtg_commander_analyzer)
        """
        self.config_dir = Path(config_dir) if config_dir else self.DEFAULT_CONFIG_DIR
        self.config_file = self.config_dir / self.DEFAULT_CONFIG_FILE
        self._config = AnalyzerConfig()

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.load_config()

    def load_config(self) -> AnalyzerConfig:
        """
        Load configuration from file.

        A corrupted file is renamed to ``config.json.backup`` and replaced by
        the defaults.

        Returns:
            Loaded configuration object
        """
        if not self.config_file.exists():
            self.save_config()
            return self._config

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
            if not isinstance(config_data, dict):
                raise ValueError("configuration root must be an object")
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.warning(f"Configuration file {self.config_file} is unreadable ({e}); using defaults")
            backup_file = self.config_file.with_suffix('.json.backup')
            self.config_file.replace(backup_file)
            self._config = AnalyzerConfig()
            self.save_config()
            return self._config

        for key, value in config_data.items():
            if hasattr(self._config, key):
                setattr(self._config, key, value)
            else:
                logger.debug(f"Ignoring unknown configuration option: {key}")

        return self._config

    def save_config(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(self._config), f, indent=2, sort_keys=True)
        except OSError as e:
            raise RuntimeError(f"Failed to save configuration: {e}")

    def get_config(self) -> AnalyzerConfig:
        """Get current configuration."""
        return self._config

    def update_config(self, **kwargs) -> None:
        """
        Update configuration values.

        Args:
            **kwargs: Configuration values to update

        Raises:
            ValueError: If an option name is unknown
        """
        known = {field.name for field in fields(AnalyzerConfig)}
        for key, value in kwargs.items():
            if key not in known:
                raise ValueError(f"Unknown configuration option: {key}")
            setattr(self._config, key, value)

        self.save_config()

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self._config = AnalyzerConfig()
        self.save_config()

    def get_cache_dir(self) -> Path:
        """Get cache directory path."""
        cache_dir = self.config_dir / "cache"
        cache_dir.mkdir(exist_ok=True)
        return cache_dir

    def get_logs_dir(self) -> Path:
        """Get logs directory path."""
        logs_dir = self.config_dir / "logs"
        logs_dir.mkdir(exist_ok=True)
        return logs_dir

    def get_oracle_cards_path(self) -> Path:
        """Resolve the oracle card file, defaulting to the configuration directory."""
        if self._config.oracle_cards_path:
            return Path(self._config.oracle_cards_path).expanduser()
        return self.config_dir / self.ORACLE_CARDS_FILE


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _parse_positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise ValueError(f"expected a positive integer, got {number}")
    return number


def apply_env_overrides(config: AnalyzerConfig) -> AnalyzerConfig:
    """
    Apply environment variable overrides to configuration.

    Invalid values are logged and ignored.

    Args:
        config: Base configuration to override

    Returns:
        Configuration with environment overrides applied
    """
    env_mappings = {
        'MTG_ANALYZER_ORACLE_CARDS': ('oracle_cards_path', str),
        'MTG_ANALYZER_DATA_DIR': ('data_dir', str),
        'MTG_ANALYZER_TEMPLATE': ('default_template_id', str),
        'MTG_ANALYZER_BRACKET': ('default_bracket_id', str),
        'MTG_ANALYZER_CACHE_ENABLED': ('edhrec_cache_enabled', _parse_bool),
        'MTG_ANALYZER_SUGGESTION_LIMIT': ('suggestion_limit', _parse_positive_int),
        'MTG_ANALYZER_VERBOSE': ('verbose_output', _parse_bool),
    }

    for env_var, (attr_name, converter) in env_mappings.items():
        env_value = os.getenv(env_var)
        if env_value is None:
            continue
        try:
            setattr(config, attr_name, converter(env_value))
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring invalid value for {env_var}: {e}")

    return config
