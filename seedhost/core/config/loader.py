"""
Configuration loader: reads seed.yml into SeedOptions.

Reads YAML, validates against the Pydantic schema, returns typed options.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from seedhost.core.errors import SeedhostError
from seedhost.core.models.options import SeedOptions

logger = logging.getLogger(__name__)

SEED_CONFIG_FILE = "seed.yml"
WRAPPER_KEY = "radicle"


class ConfigError(SeedhostError):
    """Raised when seed.yml is missing or invalid."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for seed.yml starting from *start_dir* (default: cwd), walking up."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / SEED_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def parse_options(data: object, origin: str = "<memory>") -> SeedOptions:
    """Validate an already-parsed document.

    The document may be flat or wrapped under a top-level ``radicle:`` key.
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {origin}, got {type(data).__name__}")

    if WRAPPER_KEY in data and isinstance(data[WRAPPER_KEY], dict):
        data = data[WRAPPER_KEY]

    try:
        return SeedOptions.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid seed configuration in {origin}: {e}") from e


def load_options(path: Path | None = None) -> SeedOptions:
    """Load and validate seed.yml.

    Args:
        path: Explicit path. If None, searches upward from cwd.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_config_file()

    if path is None:
        raise ConfigError(f"No {SEED_CONFIG_FILE} found. Specify one with --config.")

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading seed config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    options = parse_options(data, str(path))
    logger.info(
        "Loaded %s (httpd %s, nginx %s)",
        path,
        "on" if options.httpd.enable else "off",
        "on" if options.httpd.nginx is not None else "off",
    )
    return options
