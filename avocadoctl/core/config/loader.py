"""
Configuration loader — reads avocadoctl.yml into the Config model.

A missing file is not an error: avocadoctl runs on defaults plus
environment overrides. A file that exists but cannot be read or
validated is.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from avocadoctl.core.models.config import Config, ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/avocado/avocadoctl.yml")

__all__ = ["DEFAULT_CONFIG_PATH", "ConfigError", "load_config"]


def load_config(path: Path | None = None) -> Config:
    """Load and validate avocadoctl configuration.

    Args:
        path: Explicit config path. Defaults to /etc/avocado/avocadoctl.yml.

    Returns:
        Validated Config (defaults if the file does not exist).

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return Config()

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Config()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = Config.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config from %s (extensions dir: %s)", path, config.avocado.ext.dir)
    return config
