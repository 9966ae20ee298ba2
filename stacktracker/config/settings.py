"""
Configuration management for Stack Tracker.
"""
import json
import logging
import os
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..models.game_type import BuiltinGameType, CustomGameType, GameType, GameTypeRegistry

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "STACK_TRACKER_CONFIG_DIR"


class DirectoryConfig(BaseModel):
    """Directory configuration settings."""
    sessions: str = Field(default="sessions", description="Directory for session data files")
    config: str = Field(default=".config/stack-tracker", description="Configuration directory")


class TrackerSettings(BaseModel):
    """Read-only defaults handed to the session core at setup time."""
    seats_per_table: int = Field(9, ge=2, le=10, description="Seats used for orbit cost and M-ratio")
    default_starting_chips: int = Field(20000, gt=0, description="Starting stack for new tournaments")
    default_payout_percent: float = Field(15.0, gt=0.0, le=100.0, description="Share of the field paid")
    default_game_type: str = Field("NLH", description="Raw value of the default game type")
    default_stakes: str = Field("1/2", description="Stakes for new cash sessions")
    custom_game_types: List[CustomGameType] = Field(
        default_factory=list,
        description="User-defined game types in addition to the built-in variants"
    )

    @field_validator('custom_game_types')
    @classmethod
    def validate_custom_game_types(cls, v):
        """Custom game types may not reuse built-in or duplicate raw values."""
        builtin = {g.value for g in BuiltinGameType}
        seen = set()
        for custom in v:
            if custom.raw_value in builtin:
                raise ValueError(f"Custom game type conflicts with built-in: {custom.raw_value}")
            if custom.raw_value in seen:
                raise ValueError(f"Duplicate custom game type: {custom.raw_value}")
            seen.add(custom.raw_value)
        return v

    def game_type_registry(self) -> GameTypeRegistry:
        return GameTypeRegistry(self.custom_game_types)

    def resolve_default_game_type(self) -> GameType:
        return self.game_type_registry().resolve(self.default_game_type)


class Config(BaseModel):
    """Main configuration class."""
    directories: DirectoryConfig = Field(default_factory=DirectoryConfig)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)

    def get_data_dir(self) -> Path:
        """Get the main data directory path."""
        override = os.environ.get(CONFIG_DIR_ENV)
        if override:
            return Path(override)
        return Path.home() / self.directories.config

    def get_sessions_dir(self) -> Path:
        """Get the sessions directory path."""
        return self.get_data_dir() / self.directories.sessions

    def get_config_file(self) -> Path:
        """Get the config file path."""
        return self.get_data_dir() / "config.json"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        for directory in (self.get_data_dir(), self.get_sessions_dir()):
            directory.mkdir(parents=True, exist_ok=True)


class ConfigManager:
    """Manages loading, saving, and updating configuration."""

    def __init__(self, config_file: Optional[Path] = None):
        self._config: Optional[Config] = None
        self._config_file = config_file

    @property
    def config(self) -> Config:
        """Get the current configuration, loading if needed."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def config_file(self) -> Path:
        if self._config_file is not None:
            return self._config_file
        return Config().get_config_file()

    def load(self) -> Config:
        """Load configuration from file, falling back to defaults."""
        config_file = self.config_file

        if not config_file.exists():
            logger.info("No configuration file at %s, using defaults", config_file)
            return Config()

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            config = Config(**data)
            logger.info("Loaded configuration from %s", config_file)
            return config
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Error loading config from %s: %s; using defaults", config_file, e)
            return Config()

    def save(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self.config

        config_file = self.config_file
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(config.model_dump(mode='json'), f, indent=2)
        logger.info("Configuration saved to %s", config_file)

    def update(self, **kwargs) -> None:
        """Update configuration values using dot notation keys and save.

        Keys use '.' or '__' as the separator, e.g.
        ``update(**{'tracker.seats_per_table': 6})`` or
        ``update(tracker__seats_per_table=6)``.
        """
        config_dict = self.config.model_dump(mode='json')

        for key, value in kwargs.items():
            keys = key.replace('__', '.').split('.')
            current = config_dict

            for k in keys[:-1]:
                if k not in current:
                    current[k] = {}
                current = current[k]

            current[keys[-1]] = value

        self._config = Config(**config_dict)
        self.save()

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self._config = Config()
        self.save()


# Global config manager instance
config_manager = ConfigManager()
