"""
Configuration loader — reads bundler.json into a Configuration.

JSON is a subset of YAML, so the file is parsed with ``yaml.safe_load``;
``bundler.yml`` works just as well.  The result is validated against the
Pydantic schema and returned frozen.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from deskpack.core.errors import ConfigError
from deskpack.core.models.configuration import Configuration

logger = logging.getLogger(__name__)

# Default config filename, looked up in the working directory
CONFIG_FILE = "bundler.json"


def default_config_path() -> Path:
    """Path of ``bundler.json`` in the current working directory."""
    try:
        cwd = os.getcwd()
    except OSError as e:
        raise ConfigError(f"os.getcwd failed: {e}") from e
    return Path(cwd) / CONFIG_FILE


def load_configuration(path: Path | None = None) -> Configuration:
    """Load and validate the bundler configuration.

    Args:
        path: Explicit config path. If None, ``./bundler.json`` is used.

    Returns:
        Validated Configuration model.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.
    """
    if path is None:
        path = default_config_path()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading configuration from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"opening file {path} failed: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid configuration syntax in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(data).__name__}")

    configuration = parse_configuration(data, source=str(path))
    logger.info(
        "Loaded configuration for '%s' with %d environments",
        configuration.app_name,
        len(configuration.environments),
    )
    return configuration


def parse_configuration(data: dict, source: str = "<dict>") -> Configuration:
    """Validate an already-decoded mapping."""
    try:
        return Configuration.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {source}: {e}") from e
