"""
Configuration package for Stack Tracker.
"""

from .settings import Config, ConfigManager, DirectoryConfig, TrackerSettings, config_manager

__all__ = [
    'Config',
    'ConfigManager',
    'DirectoryConfig',
    'TrackerSettings',
    'config_manager',
]
