"""
Configuration module for the admin console.
"""

from .settings import AdminConsoleConfig, get_config, load_config, reload_config

__all__ = ["AdminConsoleConfig", "get_config", "load_config", "reload_config"]
