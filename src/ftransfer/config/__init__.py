"""
Configuration management.

Configuration file parsing, environment resolution, connection validation.
"""

from ftransfer.config.loader import Config, load_config, parse_connections
from ftransfer.config.resolver import resolve_config

__all__ = [
    "load_config",
    "Config",
    "parse_connections",
    "resolve_config",
]
