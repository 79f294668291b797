"""Configuration management for bcat.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides such as BCAT_COMMAND.
"""

from bcat.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
