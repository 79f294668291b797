"""Configuration management for bcat.

Loads settings from a YAML configuration file (``~/.bcat.yaml`` by
default) with environment variable overrides. The CLI applies its flags
on top of the loaded settings, so the rest of the package only ever sees
one resolved ``Settings`` value.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.bcat.yaml")


class LaunchConfig(BaseModel):
    browser: str = Field(default="default", description="Browser name from the command table")
    command: str | None = Field(default=None, description="Launch command overriding the table")


class DisplayConfig(BaseModel):
    title: str | None = Field(default=None)
    ansi: bool = Field(default=False, description="Convert ANSI escape sequences to HTML")
    format: Literal["auto", "html", "text"] = Field(default="auto")


class PipelineConfig(BaseModel):
    chunk_size: int = Field(default=4096, gt=0)
    channel_size: int = Field(default=1, gt=0)
    tee: bool = Field(default=False, description="Echo all input to standard output")


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    persist: bool = Field(default=False, description="Serve until interrupted")
    log_level: str = Field(default="warning")


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for bcat.

    Loads from YAML file and supports environment variable overrides
    with the ``BCAT_`` prefix (nested fields use ``__``, e.g.
    ``BCAT_SERVER__PERSIST=1``).
    """

    model_config = {
        "env_prefix": "BCAT_",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    launch: LaunchConfig = Field(default_factory=LaunchConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + environment variables.

    Priority: env vars > YAML file > defaults
    """
    path = Path(config_path).expanduser() if config_path else DEFAULT_CONFIG_PATH.expanduser()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.debug("Loaded configuration from %s", path)
    elif config_path:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply the short-form environment variables over the YAML data.

    Init values win over pydantic-settings' own environment lookup, so
    the short forms are written into the data before construction.
    """
    command = os.environ.get("BCAT_COMMAND", "")
    browser = os.environ.get("BCAT_BROWSER", "")

    if not command and not browser:
        return

    section = yaml_data.setdefault("launch", {})
    if command:
        section["command"] = command
    if browser:
        section["browser"] = browser
