"""
Managers for configuration
"""

from .config_manager import ConfigManager, ConfigError, build_parser

__all__ = ['ConfigManager', 'ConfigError', 'build_parser']
